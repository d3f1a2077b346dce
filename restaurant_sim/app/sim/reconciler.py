from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from restaurant_sim.app.errors import DetectionUnknownError, FatalReconciliationError, GatewayError
from restaurant_sim.app.integrations.base import RemoteEntityGateway, parent_id
from restaurant_sim.app.services.setup_state_service import SetupStateStore
from restaurant_sim.app.sim import catalog
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.records import PhaseCounters
from restaurant_sim.app.sim.schedule import to_epoch_ms


STEP_ORDER: tuple[str, ...] = (
    "tax_rates",
    "categories",
    "modifier_groups",
    "menu_items",
    "roles",
    "employees",
    "shifts",
    "discounts",
    "tables",
    "customers",
)

STEP_ENTITY: dict[str, str] = {
    "tax_rates": "tax_rate",
    "categories": "category",
    "modifier_groups": "modifier_group",
    "menu_items": "menu_item",
    "roles": "role",
    "employees": "employee",
    "shifts": "shift",
    "discounts": "discount",
    "tables": "table",
    "customers": "customer",
}

# "already sufficient" counts; shifts are computed from known employees
SUFFICIENT_COUNTS: dict[str, int] = {
    "tax_rate": 1,
    "category": 5,
    "modifier_group": 5,
    "menu_item": 15,
    "role": 5,
    "employee": 5,
    "discount": 4,
    "table": 1,
    "customer": 5,
}

PAGE_SIZE = 100


@dataclass(frozen=True)
class Member:
    key: str
    payload: dict[str, Any]


@dataclass(frozen=True)
class StepOutcome:
    name: str
    entity_type: str
    skipped: bool = False
    sufficient: bool = False
    discovered: int = 0
    created: int = 0
    failed: int = 0
    failed_members: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entity_type": self.entity_type,
            "skipped": self.skipped,
            "sufficient": self.sufficient,
            "discovered": self.discovered,
            "created": self.created,
            "failed": self.failed,
            "failed_members": list(self.failed_members),
        }


@dataclass
class ReconciliationReport:
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(o.created for o in self.outcomes)

    @property
    def failed(self) -> int:
        return sum(o.failed for o in self.outcomes)

    def outcome(self, name: str) -> Optional[StepOutcome]:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "failed": self.failed,
            "steps": [o.as_dict() for o in self.outcomes],
        }


class EntityReconciler:
    """
    Make sure every standard reference entity exists exactly once remotely.

    Steps run in STEP_ORDER. A completed step is never re-run until it is
    reset in the store. Within a step, members are created one at a time and a
    failing member never stops the others.
    """

    def __init__(
        self,
        gateway: RemoteEntityGateway,
        store: SetupStateStore,
        *,
        sink: Optional[EventSink] = None,
        seed: int = 1337,
        strict_detection: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.sink = sink or LoggingEventSink()
        self.seed = seed
        self.strict_detection = strict_detection
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.modifier_counters = PhaseCounters()

    def run(self, steps: Iterable[str] = STEP_ORDER) -> ReconciliationReport:
        report = ReconciliationReport()
        for name in steps:
            report.outcomes.append(self.run_step(name))
        self.sink.emit(
            "reconcile.finished",
            created=report.created,
            failed=report.failed,
            modifiers_created=self.modifier_counters.success_count,
            modifiers_failed=self.modifier_counters.error_count,
        )
        return report

    def run_step(self, name: str) -> StepOutcome:
        if name not in STEP_ENTITY:
            raise ValueError(f"unknown setup step: {name}")
        entity_type = STEP_ENTITY[name]
        if self.store.step_completed(name):
            self.sink.emit("reconcile.step_skipped", step=name)
            return StepOutcome(name=name, entity_type=entity_type, skipped=True)

        existing = self._detect(name, entity_type)
        for record in existing:
            self.store.record_entity(entity_type, record["id"], self._identity(entity_type, record), record)

        threshold = self._threshold(entity_type)
        if len(existing) >= threshold:
            outcome = StepOutcome(name=name, entity_type=entity_type, sufficient=True, discovered=len(existing))
            self.store.mark_step_completed(name, outcome.as_dict())
            self.sink.emit("reconcile.step_sufficient", step=name, discovered=len(existing), threshold=threshold)
            return outcome

        known = {self._identity(entity_type, r) for r in existing}
        counters = PhaseCounters()
        failed_members: list[str] = []
        for member in self._members(name):
            if member.key in known or self.store.entity_exists(entity_type, member.key):
                continue
            try:
                payload = self._payload(name, member)
                record = self.gateway.create(entity_type, payload)
            except (GatewayError, ValueError) as exc:
                counters.error_count += 1
                failed_members.append(member.key)
                self.sink.emit("reconcile.member_failed", step=name, member=member.key, error=str(exc))
                continue
            self.store.record_entity(entity_type, record["id"], member.key, record)
            counters.success_count += 1
            self._after_create(name, member, record)

        if counters.error_count and not counters.success_count and not existing:
            message = f"all {counters.error_count} creations failed"
            self.store.record_last_error(name, message)
            self.sink.emit("reconcile.step_fatal", step=name, error=message)
            raise FatalReconciliationError(name, message)

        outcome = StepOutcome(
            name=name,
            entity_type=entity_type,
            discovered=len(existing),
            created=counters.success_count,
            failed=counters.error_count,
            failed_members=tuple(failed_members),
        )
        self.store.mark_step_completed(name, outcome.as_dict())
        self.sink.emit("reconcile.step_completed", step=name, **counters.as_dict())
        return outcome

    # --- detection ---

    def _detect(self, name: str, entity_type: str) -> list[dict]:
        records: list[dict] = []
        offset = 0
        try:
            while True:
                page = self.gateway.list(entity_type, limit=PAGE_SIZE, offset=offset).get("elements", [])
                records.extend(r for r in page if r.get("id"))
                if len(page) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except GatewayError as exc:
            if self.strict_detection:
                raise DetectionUnknownError(f"{name}: could not list {entity_type}: {exc}") from exc
            self.sink.emit("reconcile.detection_unknown", step=name, error=str(exc))
            return []
        return records

    def _threshold(self, entity_type: str) -> int:
        if entity_type == "shift":
            return len(self.store.get_entities("employee"))
        return SUFFICIENT_COUNTS[entity_type]

    @staticmethod
    def _identity(entity_type: str, record: dict) -> Optional[str]:
        if entity_type == "shift":
            return parent_id(record, "employee")
        return catalog.display_name(record)

    def _ids_by_name(self, entity_type: str) -> dict[str, str]:
        return {e["name"]: e["id"] for e in self.store.get_entities(entity_type) if e["name"]}

    # --- standard sets ---

    def _members(self, name: str) -> list[Member]:
        if name == "tax_rates":
            return [Member(t["name"], dict(t)) for t in catalog.TAX_RATES]
        if name == "categories":
            return [Member(c, {"name": c, "sortOrder": i + 1}) for i, c in enumerate(catalog.CATEGORIES)]
        if name == "modifier_groups":
            return [Member(g.name, {"name": g.name, "showByDefault": True}) for g in catalog.MODIFIER_GROUPS]
        if name == "menu_items":
            return [
                Member(i.name, {"name": i.name, "price": i.price, "category": i.category})
                for i in catalog.MENU_ITEMS
            ]
        if name == "roles":
            return [
                Member(r.name, {"name": r.name, "systemRole": r.system_role, "permissions": list(r.permissions)})
                for r in catalog.ROLES
            ]
        if name == "employees":
            return [Member(e["name"], e) for e in catalog.standard_employees(self.seed)]
        if name == "shifts":
            return [Member(e["id"], {"employee": {"id": e["id"]}}) for e in self.store.get_entities("employee")]
        if name == "discounts":
            return [Member(d["name"], dict(d)) for d in catalog.DISCOUNTS]
        if name == "tables":
            return [Member(t["name"], t) for t in catalog.standard_tables()]
        if name == "customers":
            return [Member(catalog.display_name(c) or "", c) for c in catalog.standard_customers(self.seed)]
        raise ValueError(f"unknown setup step: {name}")

    def _payload(self, name: str, member: Member) -> dict[str, Any]:
        payload = dict(member.payload)
        if name == "menu_items":
            category = payload.pop("category")
            category_id = self._ids_by_name("category").get(category)
            group_ids = self._ids_by_name("modifier_group")
            payload["priceType"] = "FIXED"
            payload["categories"] = [{"id": category_id}] if category_id else []
            payload["modifierGroups"] = [
                {"id": group_ids[g]} for g in catalog.CATEGORY_MODIFIER_GROUPS.get(category, ()) if g in group_ids
            ]
        elif name == "employees":
            role_id = self._ids_by_name("role").get(payload.pop("role_name"))
            if role_id:
                payload["role"] = {"id": role_id}
        elif name == "shifts":
            payload["inTime"] = to_epoch_ms(self.clock())
        return payload

    def _after_create(self, name: str, member: Member, record: dict) -> None:
        if name != "modifier_groups":
            return
        group = catalog.modifier_group_by_name(member.key)
        if group is None:
            return
        for modifier_name, price in group.modifiers:
            payload = {"modifierGroup": {"id": record["id"]}, "name": modifier_name, "price": price}
            try:
                created = self.gateway.create("modifier", payload)
            except GatewayError as exc:
                self.modifier_counters.error_count += 1
                self.sink.emit("reconcile.modifier_failed", group=member.key, modifier=modifier_name, error=str(exc))
                continue
            self.modifier_counters.success_count += 1
            self.store.record_entity("modifier", created["id"], modifier_name, created)
