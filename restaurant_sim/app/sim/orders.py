from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Optional, Sequence

from restaurant_sim.app.errors import GatewayError, InvalidTransitionError
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.sim import catalog
from restaurant_sim.app.sim.context import MenuEntry, MerchantContext, ModifierOption
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.records import (
    Adjustment,
    CustomerRef,
    LineItem,
    Modification,
    Order,
    OrderKind,
    PhaseLedger,
    Reservation,
    StaffMember,
    TableRef,
)
from restaurant_sim.app.sim.reservations import ReservationGenerator
from restaurant_sim.app.sim.rng import round_half_up
from restaurant_sim.app.sim.schedule import at_minute, to_epoch_ms
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning
from restaurant_sim.app.sim.valuation import OrderValuationEngine, Valuation


class OrderBuilder:
    """
    Build walk-in and reservation orders against the remote system.

    Each order is opened, filled, taxed and finalized. A failure while adding
    a line item, modification, discount or charge only drops that unit; a
    failure during finalization keeps the order with no total.
    """

    def __init__(
        self,
        gateway: RemoteEntityGateway,
        valuation: OrderValuationEngine,
        reservations: ReservationGenerator,
        *,
        tuning: SimulationTuning = DEFAULT_TUNING,
        sink: Optional[EventSink] = None,
    ):
        self.gateway = gateway
        self.valuation = valuation
        self.reservations = reservations
        self.tuning = tuning
        self.sink = sink or LoggingEventSink()
        self.ledger = PhaseLedger(
            "orders", "line_items", "modifications", "discounts", "service_charges", "taxes", "finalizations"
        )

    # --- walk-ins ---

    def build_walk_ins(
        self,
        day: date,
        context: MerchantContext,
        staff: Sequence[StaffMember],
        rng: random.Random,
    ) -> list[Order]:
        if not context.menu:
            self.sink.emit("orders.skipped", day=day.isoformat(), reason="empty menu")
            return []
        staff = list(staff) or context.employees
        t = self.tuning
        orders: list[Order] = []
        for _ in range(rng.randint(*t.walk_ins_per_day)):
            employee = rng.choice(staff) if staff else None
            customer = None
            if context.customers and rng.random() < t.customer_probability:
                customer = rng.choice(context.customers)
            table = rng.choice(context.tables) if context.tables else None
            hour = rng.randint(*t.walk_in_hours)
            minute = rng.randint(0, 59)

            order = self._open(
                OrderKind.WALK_IN,
                at_minute(day, hour * 60 + minute),
                employee=employee,
                customer=customer,
                table=table,
            )
            if order is None:
                continue

            count = min(len(context.menu), rng.randint(*t.walk_in_items))
            for entry in rng.sample(context.menu, count):
                self._add_line_item(
                    order,
                    context,
                    entry,
                    quantity=rng.randint(*t.walk_in_quantity),
                    rng=rng,
                    modifier_probability=t.walk_in_modifier_probability,
                    note_probability=t.note_probability,
                )
            if context.discounts and rng.random() < t.discount_probability:
                self._add_discount(order, rng.choice(context.discounts))

            self._apply_default_taxes(order, context)
            self.finalize(order)
            orders.append(order)
        return orders

    # --- reservation orders ---

    def build_reservation_orders(
        self,
        day: date,
        context: MerchantContext,
        staff: Sequence[StaffMember],
        reservations: Sequence[Reservation],
        rng: random.Random,
    ) -> list[Order]:
        staff = list(staff) or context.employees
        t = self.tuning
        orders: list[Order] = []
        for reservation in reservations:
            if reservation.customer_id is None or not context.menu:
                continue
            if t.no_show_probability > 0 and rng.random() < t.no_show_probability:
                self._try_transition(self.reservations.mark_no_show, reservation)
                continue
            if not self._try_transition(self.reservations.check_in, reservation):
                continue

            employee = rng.choice(staff) if staff else None
            customer = next((c for c in context.customers if c.id == reservation.customer_id), None)
            table = next((tb for tb in context.tables if tb.id == reservation.table_id), None)
            order = self._open(
                OrderKind.RESERVATION,
                reservation.time + timedelta(minutes=t.reservation_order_delay_minutes),
                employee=employee,
                customer=customer or CustomerRef(reservation.customer_id, reservation.customer_id),
                table=table,
                reservation=reservation,
            )
            if order is None:
                continue

            item_count = max(1, round_half_up(reservation.party_size * t.items_per_guest))
            for _ in range(item_count):
                self._add_line_item(
                    order,
                    context,
                    rng.choice(context.menu),
                    quantity=1,
                    rng=rng,
                    modifier_probability=t.reservation_modifier_probability,
                    note_probability=0.0,
                )
            if reservation.party_size >= t.auto_gratuity_party_size:
                self._add_service_charge(
                    order,
                    f"{t.auto_gratuity_percent}% Gratuity (Party of {reservation.party_size})",
                    t.auto_gratuity_percent,
                )

            self._apply_default_taxes(order, context)
            self.finalize(order)
            orders.append(order)
            self._try_transition(self.reservations.complete, reservation)
        return orders

    # --- finalization ---

    def finalize(self, order: Order) -> Optional[Valuation]:
        try:
            valuation = self.valuation.value_order(order)
            self.gateway.update("order", order.id, {"total": valuation.total})
        except GatewayError as exc:
            self.ledger.failed("finalizations")
            self.sink.emit("orders.finalize_failed", order=order.id, error=str(exc))
            return None
        self.ledger.ok("finalizations")
        order.total = valuation.total
        self.sink.emit(
            "orders.finalized",
            order=order.id,
            kind=order.kind.value,
            items=len(order.line_items),
            total=valuation.total,
        )
        return valuation

    # --- units ---

    def _try_transition(self, action, reservation: Reservation) -> bool:
        try:
            action(reservation)
        except (GatewayError, InvalidTransitionError) as exc:
            self.sink.emit("reservations.transition_failed", reservation=reservation.id, error=str(exc))
            return False
        return True

    def _open(
        self,
        kind: OrderKind,
        created_at,
        *,
        employee: Optional[StaffMember] = None,
        customer: Optional[CustomerRef] = None,
        table: Optional[TableRef] = None,
        reservation: Optional[Reservation] = None,
    ) -> Optional[Order]:
        payload: dict = {"state": "OPEN", "createdTime": to_epoch_ms(created_at), "title": kind.value}
        if employee is not None:
            payload["employee"] = {"id": employee.id}
        if customer is not None:
            payload["customers"] = [{"id": customer.id}]
        if table is not None:
            payload["table"] = {"id": table.id}
        if reservation is not None:
            payload["reservation"] = {"id": reservation.id}
        try:
            record = self.gateway.create("order", payload)
        except GatewayError as exc:
            self.ledger.failed("orders")
            self.sink.emit("orders.create_failed", kind=kind.value, error=str(exc))
            return None
        self.ledger.ok("orders")
        return Order(
            id=record["id"],
            kind=kind,
            created_at=created_at,
            employee_id=employee.id if employee else None,
            employee_name=employee.name if employee else None,
            customer_id=customer.id if customer else None,
            table_id=table.id if table else None,
            reservation_id=reservation.id if reservation else None,
        )

    def _add_line_item(
        self,
        order: Order,
        context: MerchantContext,
        entry: MenuEntry,
        *,
        quantity: int,
        rng: random.Random,
        modifier_probability: float,
        note_probability: float,
    ) -> Optional[LineItem]:
        note = None
        if note_probability > 0 and rng.random() < note_probability:
            note = rng.choice(catalog.ORDER_NOTES)
        payload = {
            "order": {"id": order.id},
            "item": {"id": entry.id},
            "name": entry.name,
            "price": entry.price,
            "unitQty": quantity,
        }
        if note:
            payload["note"] = note
        try:
            record = self.gateway.create("line_item", payload)
        except GatewayError as exc:
            self.ledger.failed("line_items")
            self.sink.emit("orders.line_item_failed", order=order.id, item=entry.name, error=str(exc))
            return None
        self.ledger.ok("line_items")

        line = LineItem(record["id"], entry.id, entry.name, entry.price, quantity, note=note)
        order.line_items.append(line)
        if modifier_probability > 0 and rng.random() < modifier_probability:
            groups = context.modifiers_for(entry)
            if groups:
                options = groups[rng.choice(sorted(groups))]
                self._add_modification(order, line, rng.choice(options))
        return line

    def _add_modification(self, order: Order, line: LineItem, option: ModifierOption) -> None:
        payload = {
            "order": {"id": order.id},
            "lineItem": {"id": line.id},
            "modifier": {"id": option.id},
            "name": option.name,
            "amount": option.price,
        }
        try:
            record = self.gateway.create("modification", payload)
        except GatewayError as exc:
            self.ledger.failed("modifications")
            self.sink.emit("orders.modification_failed", order=order.id, line_item=line.id, error=str(exc))
            return
        self.ledger.ok("modifications")
        line.modifications.append(Modification(record["id"], option.id, option.name, option.price))

    def _add_discount(self, order: Order, discount: Adjustment) -> None:
        payload: dict = {"order": {"id": order.id}, "discount": {"id": discount.id}, "name": discount.name}
        if discount.percentage is not None:
            payload["percentage"] = discount.percentage
        if discount.amount is not None:
            payload["amount"] = discount.amount
        try:
            self.gateway.create("order_discount", payload)
        except GatewayError as exc:
            self.ledger.failed("discounts")
            self.sink.emit("orders.discount_failed", order=order.id, discount=discount.name, error=str(exc))
            return
        self.ledger.ok("discounts")
        order.discounts.append(discount)

    def _add_service_charge(self, order: Order, name: str, percentage: float) -> None:
        payload = {"order": {"id": order.id}, "name": name, "percentage": percentage}
        try:
            record = self.gateway.create("service_charge", payload)
        except GatewayError as exc:
            self.ledger.failed("service_charges")
            self.sink.emit("orders.service_charge_failed", order=order.id, error=str(exc))
            return
        self.ledger.ok("service_charges")
        order.service_charges.append(Adjustment(record["id"], name, percentage=percentage))

    def _apply_default_taxes(self, order: Order, context: MerchantContext) -> None:
        rates = context.default_tax_rates
        if not rates:
            return
        try:
            self.gateway.update("order", order.id, {"taxRates": [{"id": r.id, "rate": r.rate} for r in rates]})
        except GatewayError as exc:
            self.ledger.failed("taxes")
            self.sink.emit("orders.tax_failed", order=order.id, error=str(exc))
            return
        self.ledger.ok("taxes")
        order.tax_rates = list(rates)
