from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from restaurant_sim.app.errors import GatewayError
from restaurant_sim.app.integrations.base import RemoteEntityGateway, parent_id
from restaurant_sim.app.services.setup_state_service import SetupStateStore
from restaurant_sim.app.sim import catalog
from restaurant_sim.app.sim.records import Adjustment, CustomerRef, StaffMember, TableRef, TaxRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifierOption:
    id: str
    name: str
    price: int


@dataclass(frozen=True)
class MenuEntry:
    id: str
    name: str
    price: int
    modifier_group_ids: tuple[str, ...] = ()


@dataclass
class MerchantContext:
    """Reference data the day loop draws from, loaded once after setup."""

    employees: list[StaffMember] = field(default_factory=list)
    menu: list[MenuEntry] = field(default_factory=list)
    modifiers: dict[str, list[ModifierOption]] = field(default_factory=dict)
    discounts: list[Adjustment] = field(default_factory=list)
    tax_rates: list[TaxRate] = field(default_factory=list)
    tables: list[TableRef] = field(default_factory=list)
    customers: list[CustomerRef] = field(default_factory=list)

    @property
    def default_tax_rates(self) -> list[TaxRate]:
        return [t for t in self.tax_rates if t.is_default]

    def modifiers_for(self, entry: MenuEntry) -> dict[str, list[ModifierOption]]:
        return {gid: self.modifiers[gid] for gid in entry.modifier_group_ids if self.modifiers.get(gid)}


def _elements(value: Any) -> list:
    if isinstance(value, dict):
        return list(value.get("elements") or [])
    return list(value or [])


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _menu_entry(row: dict) -> MenuEntry:
    data = row["data"]
    group_ids = tuple(str(g["id"]) for g in _elements(data.get("modifierGroups")) if g.get("id"))
    if not group_ids:
        # discovered items may not carry their groups; fall back to the category mapping
        definition = catalog.menu_item_by_name(row["name"] or "")
        if definition is not None:
            group_ids = tuple(catalog.CATEGORY_MODIFIER_GROUPS.get(definition.category, ()))
    return MenuEntry(
        id=row["id"],
        name=row["name"] or data.get("name") or row["id"],
        price=int(data.get("price") or 0),
        modifier_group_ids=group_ids,
    )


def _load_modifiers(store: SetupStateStore, gateway: RemoteEntityGateway) -> dict[str, list[ModifierOption]]:
    groups = store.get_entities("modifier_group")
    by_group: dict[str, list[ModifierOption]] = {g["id"]: [] for g in groups}
    for row in store.get_entities("modifier"):
        gid = parent_id(row["data"], "modifierGroup")
        if gid in by_group:
            by_group[gid].append(ModifierOption(row["id"], row["name"] or "", int(row["data"].get("price") or 0)))

    for group in groups:
        gid = group["id"]
        if by_group[gid]:
            continue
        try:
            found = gateway.list("modifier", filter={"modifierGroup.id": gid}).get("elements", [])
        except GatewayError as exc:
            logger.warning("could not load modifiers for group %s: %s", gid, exc)
            continue
        by_group[gid] = [ModifierOption(str(m["id"]), m.get("name", ""), int(m.get("price") or 0)) for m in found]

    # allow lookups by group name as well as id
    for group in groups:
        if group["name"]:
            by_group.setdefault(group["name"], by_group[group["id"]])
    return by_group


def load_context(store: SetupStateStore, gateway: RemoteEntityGateway) -> MerchantContext:
    employees = [
        StaffMember(
            id=row["id"],
            name=row["name"] or row["id"],
            role_id=parent_id(row["data"], "role"),
            pin=row["data"].get("pin"),
        )
        for row in store.get_entities("employee")
    ]
    tax_rates = [
        TaxRate(
            id=row["id"],
            name=row["name"] or row["id"],
            rate=float(row["data"].get("rate") or 0),
            is_default=bool(row["data"].get("isDefault")),
        )
        for row in store.get_entities("tax_rate")
    ]
    discounts = [
        Adjustment(
            id=row["id"],
            name=row["name"] or row["id"],
            percentage=_optional_number(row["data"].get("percentage")),
            amount=int(row["data"]["amount"]) if row["data"].get("amount") is not None else None,
        )
        for row in store.get_entities("discount")
    ]
    tables = [
        TableRef(id=row["id"], name=row["name"] or row["id"], max_seats=int(row["data"].get("maxSeats") or 4))
        for row in store.get_entities("table")
    ]
    customers = [
        CustomerRef(id=row["id"], name=row["name"] or row["id"])
        for row in store.get_entities("customer")
    ]
    context = MerchantContext(
        employees=employees,
        menu=[_menu_entry(row) for row in store.get_entities("menu_item")],
        modifiers=_load_modifiers(store, gateway),
        discounts=discounts,
        tax_rates=tax_rates,
        tables=tables,
        customers=customers,
    )
    logger.info(
        "merchant context loaded: employees=%s menu=%s tables=%s customers=%s",
        len(employees),
        len(context.menu),
        len(tables),
        len(customers),
    )
    return context
