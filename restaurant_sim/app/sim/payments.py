from __future__ import annotations

import random
from typing import Optional, Sequence

from restaurant_sim.app.errors import GatewayError
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.records import Order, Payment, PaymentMethod, PhaseLedger, Refund, RefundKind
from restaurant_sim.app.sim.rng import percent_of
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning

FULL_REFUND_REASON = "Customer dissatisfied"
PARTIAL_REFUND_REASON = "Item quality issue"


def _payment_from_record(order_id: str, record: dict) -> Payment:
    method = str(record.get("paymentType") or PaymentMethod.CARD.value).upper()
    return Payment(
        id=record["id"],
        order_id=order_id,
        amount=int(record.get("amount") or 0),
        method=PaymentMethod(method) if method in PaymentMethod.__members__ else PaymentMethod.CARD,
        tip_amount=int(record.get("tipAmount") or 0),
    )


def first_payment(gateway: RemoteEntityGateway, order_id: str) -> Optional[dict]:
    elements = gateway.list("payment", limit=1, filter={"order.id": order_id}).get("elements", [])
    return elements[0] if elements else None


class PaymentSettlement:
    """Capture one payment per finalized order, plus an optional tip."""

    def __init__(
        self,
        gateway: RemoteEntityGateway,
        *,
        tuning: SimulationTuning = DEFAULT_TUNING,
        sink: Optional[EventSink] = None,
    ):
        self.gateway = gateway
        self.tuning = tuning
        self.sink = sink or LoggingEventSink()
        self.ledger = PhaseLedger("payments", "tips")

    def settle(self, order: Order, rng: random.Random) -> Optional[Payment]:
        if order.total is None or order.total <= 0:
            self.sink.emit("payments.skipped", order=order.id, total=order.total)
            return None

        try:
            existing = first_payment(self.gateway, order.id)
        except GatewayError as exc:
            self.sink.emit("payments.lookup_failed", order=order.id, error=str(exc))
            existing = None
        if existing is not None:
            return _payment_from_record(order.id, existing)

        t = self.tuning
        method = PaymentMethod.CARD if rng.random() < t.card_probability else PaymentMethod.CASH
        payload = {
            "order": {"id": order.id},
            "amount": order.total,
            "offline": False,
            "paymentType": method.value,
        }
        try:
            record = self.gateway.create("payment", payload)
        except GatewayError as exc:
            self.ledger.failed("payments")
            self.sink.emit("payments.create_failed", order=order.id, error=str(exc))
            return None
        self.ledger.ok("payments")
        payment = Payment(record["id"], order.id, order.total, method)

        if rng.random() < t.tip_probability:
            tip = percent_of(order.total, rng.randint(*t.tip_percent))
            try:
                self.gateway.create("tip", {"payment": {"id": payment.id}, "tipAmount": tip})
            except GatewayError as exc:
                self.ledger.failed("tips")
                self.sink.emit("payments.tip_failed", payment=payment.id, error=str(exc))
            else:
                self.ledger.ok("tips")
                payment.tip_amount = tip
        return payment

    def settle_all(self, orders: Sequence[Order], rng: random.Random) -> list[Payment]:
        payments = []
        for order in orders:
            payment = self.settle(order, rng)
            if payment is not None:
                payments.append(payment)
        return payments


class RefundProcessor:
    """Refund a few of the day's paid orders, in full or in part."""

    def __init__(
        self,
        gateway: RemoteEntityGateway,
        *,
        tuning: SimulationTuning = DEFAULT_TUNING,
        sink: Optional[EventSink] = None,
    ):
        self.gateway = gateway
        self.tuning = tuning
        self.sink = sink or LoggingEventSink()
        self.ledger = PhaseLedger("refunds")

    def refund(self, order: Order, rng: random.Random) -> Optional[Refund]:
        try:
            payment = first_payment(self.gateway, order.id)
        except GatewayError as exc:
            self.ledger.failed("refunds")
            self.sink.emit("refunds.lookup_failed", order=order.id, error=str(exc))
            return None
        if payment is None:
            self.sink.emit("refunds.skipped", order=order.id, reason="no payment")
            return None

        paid = int(payment.get("amount") or 0)
        t = self.tuning
        if rng.random() < t.full_refund_probability:
            kind, reason, amount = RefundKind.FULL, FULL_REFUND_REASON, paid
        else:
            base = order.total if order.total is not None else paid
            kind, reason = RefundKind.PARTIAL, PARTIAL_REFUND_REASON
            amount = percent_of(base, rng.randint(*t.partial_refund_percent))
        amount = min(amount, paid)
        if amount <= 0:
            return None

        payload = {
            "payment": {"id": payment["id"]},
            "order": {"id": order.id},
            "amount": amount,
            "reason": reason,
            "fullRefund": kind is RefundKind.FULL,
        }
        try:
            record = self.gateway.create("refund", payload)
        except GatewayError as exc:
            self.ledger.failed("refunds")
            self.sink.emit("refunds.create_failed", order=order.id, error=str(exc))
            return None
        self.ledger.ok("refunds")
        self.sink.emit("refunds.created", order=order.id, kind=kind.value, amount=amount)
        return Refund(record["id"], payment["id"], order.id, amount, reason, kind)

    def process(self, orders: Sequence[Order], rng: random.Random) -> list[Refund]:
        if not orders:
            return []
        count = min(rng.randint(*self.tuning.refunds_per_day), len(orders))
        refunds = []
        for order in rng.sample(list(orders), count):
            refund = self.refund(order, rng)
            if refund is not None:
                refunds.append(refund)
        return refunds
