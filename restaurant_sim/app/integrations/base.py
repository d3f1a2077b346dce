from __future__ import annotations

from typing import Any, Optional, Protocol


EntityType = str
Record = dict[str, Any]

REFERENCE_ENTITY_TYPES: tuple[EntityType, ...] = (
    "tax_rate",
    "category",
    "modifier_group",
    "menu_item",
    "role",
    "employee",
    "shift",
    "discount",
    "table",
    "customer",
)

ENTITY_TYPES: tuple[EntityType, ...] = REFERENCE_ENTITY_TYPES + (
    "modifier",
    "reservation",
    "order",
    "line_item",
    "modification",
    "order_discount",
    "service_charge",
    "payment",
    "refund",
    "tip",
)


def check_entity_type(entity_type: EntityType) -> EntityType:
    if entity_type not in ENTITY_TYPES:
        raise ValueError(f"unsupported entity type: {entity_type}")
    return entity_type


def parent_id(payload: Optional[dict], key: str) -> Optional[str]:
    """Read a nested parent reference such as payload["order"]["id"]."""
    if not payload:
        return None
    ref = payload.get(key)
    if isinstance(ref, dict):
        value = ref.get("id")
        return str(value) if value is not None else None
    dotted = payload.get(f"{key}.id")
    return str(dotted) if dotted is not None else None


class RemoteEntityGateway(Protocol):
    """CRUD access to the remote POS system, keyed by entity type and id."""

    def list(
        self,
        entity_type: EntityType,
        *,
        limit: int = 100,
        offset: int = 0,
        filter: Optional[dict] = None,
    ) -> dict:
        ...

    def get(self, entity_type: EntityType, entity_id: str) -> Record:
        ...

    def create(self, entity_type: EntityType, payload: dict) -> Record:
        ...

    def update(self, entity_type: EntityType, entity_id: str, payload: dict) -> Record:
        ...

    def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        ...
