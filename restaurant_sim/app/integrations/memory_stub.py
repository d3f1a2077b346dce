from __future__ import annotations

import copy
import itertools
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Optional

from restaurant_sim.app.errors import GatewayError, GatewayValidationError, NotFoundError
from restaurant_sim.app.integrations.base import EntityType, Record, check_entity_type, parent_id


def _lookup(record: dict, dotted: str) -> Any:
    value: Any = record
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


@dataclass
class FailureRule:
    operation: str
    entity_type: EntityType
    match: Optional[Callable[[dict], bool]] = None
    error: Callable[[str], GatewayError] = GatewayValidationError
    remaining: Optional[int] = None

    def applies(self, operation: str, entity_type: EntityType, payload: dict) -> bool:
        if self.operation != operation or self.entity_type != entity_type:
            return False
        if self.remaining is not None and self.remaining <= 0:
            return False
        return self.match is None or bool(self.match(payload))


class InMemoryGateway:
    """
    Offline stand-in for the remote POS system.

    Ids are sequential per process, so a seeded run against a fresh stub is
    reproducible. fail_on() injects gateway errors for specific calls.
    """

    def __init__(self):
        self._records: dict[EntityType, dict[str, Record]] = {}
        self._ids = itertools.count(1)
        self._rules: list[FailureRule] = []
        self.calls: Counter = Counter()

    # --- test hooks ---

    def fail_on(
        self,
        operation: str,
        entity_type: EntityType,
        *,
        match: Optional[Callable[[dict], bool]] = None,
        error: Callable[[str], GatewayError] = GatewayValidationError,
        times: Optional[int] = None,
    ) -> FailureRule:
        rule = FailureRule(operation, entity_type, match, error, times)
        self._rules.append(rule)
        return rule

    def clear_failures(self) -> None:
        self._rules.clear()

    def seed(self, entity_type: EntityType, records: list[dict]) -> list[Record]:
        return [self._store(entity_type, record) for record in records]

    def records(self, entity_type: EntityType) -> list[Record]:
        return [copy.deepcopy(r) for r in self._records.get(entity_type, {}).values()]

    # --- internals ---

    def _check(self, operation: str, entity_type: EntityType, payload: Optional[dict] = None) -> None:
        check_entity_type(entity_type)
        self.calls[(operation, entity_type)] += 1
        for rule in self._rules:
            if rule.applies(operation, entity_type, payload or {}):
                if rule.remaining is not None:
                    rule.remaining -= 1
                raise rule.error(f"injected failure: {operation} {entity_type}")

    def _store(self, entity_type: EntityType, payload: dict) -> Record:
        record = copy.deepcopy(payload)
        record.setdefault("id", f"{entity_type.upper()}{next(self._ids):06d}")
        self._records.setdefault(entity_type, {})[str(record["id"])] = record
        return copy.deepcopy(record)

    def _require(self, entity_type: EntityType, entity_id: str) -> Record:
        record = self._records.get(entity_type, {}).get(str(entity_id))
        if record is None:
            raise NotFoundError(f"{entity_type} {entity_id} not found", status_code=404)
        return record

    # --- gateway ---

    def list(
        self,
        entity_type: EntityType,
        *,
        limit: int = 100,
        offset: int = 0,
        filter: Optional[dict] = None,
    ) -> dict:
        self._check("list", entity_type, filter)
        rows = list(self._records.get(entity_type, {}).values())
        for key, expected in (filter or {}).items():
            rows = [r for r in rows if str(_lookup(r, key)) == str(expected)]
        return {"elements": [copy.deepcopy(r) for r in rows[offset: offset + limit]]}

    def get(self, entity_type: EntityType, entity_id: str) -> Record:
        self._check("get", entity_type)
        return copy.deepcopy(self._require(entity_type, entity_id))

    def create(self, entity_type: EntityType, payload: dict) -> Record:
        self._check("create", entity_type, payload)
        if entity_type == "tip":
            payment_id = parent_id(payload, "payment")
            payment = self._require("payment", payment_id or "")
            payment["tipAmount"] = int(payload.get("tipAmount") or 0)
            return copy.deepcopy(payment)
        return self._store(entity_type, {k: v for k, v in payload.items() if k != "id"})

    def update(self, entity_type: EntityType, entity_id: str, payload: dict) -> Record:
        self._check("update", entity_type, payload)
        record = self._require(entity_type, entity_id)
        record.update(copy.deepcopy({k: v for k, v in payload.items() if k != "id"}))
        return copy.deepcopy(record)

    def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        self._check("delete", entity_type)
        self._require(entity_type, entity_id)
        del self._records[entity_type][str(entity_id)]
        return True
