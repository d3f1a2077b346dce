from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.records import Adjustment, LineItem, Order, TaxRate
from restaurant_sim.app.sim.rng import percent_of


@dataclass(frozen=True)
class ValuationLine:
    kind: str
    name: str
    amount: int


@dataclass(frozen=True)
class Valuation:
    subtotal: int
    discount_total: int
    after_discounts: int
    charge_total: int
    after_charges: int
    tax_total: int
    total: int
    lines: tuple[ValuationLine, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "after_discounts": self.after_discounts,
            "charge_total": self.charge_total,
            "after_charges": self.after_charges,
            "tax_total": self.tax_total,
            "total": self.total,
            "lines": [{"kind": l.kind, "name": l.name, "amount": l.amount} for l in self.lines],
        }


class OrderValuationEngine:
    """
    Compute an order total in integer minor units.

    subtotal    = sum((unit_price + sum(modification prices)) * quantity)
    afterDisc   = subtotal - discounts      (percent of subtotal, or |amount|)
    afterCharge = afterDisc + charges       (percent of afterDisc, or amount)
    total       = afterCharge + taxes       (rate percent of afterCharge)

    Every percentage entry is rounded half-up on its own.
    """

    def __init__(self, sink: Optional[EventSink] = None):
        self.sink = sink or LoggingEventSink()

    @staticmethod
    def subtotal(line_items: Sequence[LineItem]) -> int:
        total = 0
        for line in line_items:
            unit = line.unit_price + sum(m.price for m in line.modifications)
            total += unit * line.quantity
        return total

    def _adjustment(self, kind: str, entry: Adjustment, base: int) -> Optional[int]:
        if entry.percentage is not None:
            return percent_of(base, entry.percentage)
        if entry.amount is not None:
            return int(entry.amount)
        self.sink.emit("valuation.malformed_entry", kind=kind, name=entry.name, id=entry.id)
        return None

    def value(
        self,
        line_items: Sequence[LineItem],
        *,
        discounts: Sequence[Adjustment] = (),
        service_charges: Sequence[Adjustment] = (),
        tax_rates: Sequence[TaxRate] = (),
    ) -> Valuation:
        lines: list[ValuationLine] = []
        subtotal = self.subtotal(line_items)

        discount_total = 0
        for entry in discounts:
            amount = self._adjustment("discount", entry, subtotal)
            if amount is None:
                continue
            amount = abs(amount)
            discount_total += amount
            lines.append(ValuationLine("discount", entry.name, -amount))
        after_discounts = subtotal - discount_total

        charge_total = 0
        for entry in service_charges:
            amount = self._adjustment("service_charge", entry, after_discounts)
            if amount is None:
                continue
            charge_total += amount
            lines.append(ValuationLine("service_charge", entry.name, amount))
        after_charges = after_discounts + charge_total

        tax_total = 0
        for rate in tax_rates:
            amount = percent_of(after_charges, rate.rate)
            tax_total += amount
            lines.append(ValuationLine("tax", rate.name, amount))

        return Valuation(
            subtotal=subtotal,
            discount_total=discount_total,
            after_discounts=after_discounts,
            charge_total=charge_total,
            after_charges=after_charges,
            tax_total=tax_total,
            total=after_charges + tax_total,
            lines=tuple(lines),
        )

    def value_order(self, order: Order) -> Valuation:
        return self.value(
            order.line_items,
            discounts=order.discounts,
            service_charges=order.service_charges,
            tax_rates=order.tax_rates,
        )

    def total(self, order: Order) -> int:
        return self.value_order(order).total
