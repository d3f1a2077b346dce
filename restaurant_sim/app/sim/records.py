from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from restaurant_sim.app.errors import InvalidTransitionError


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    role_id: Optional[str] = None
    pin: Optional[str] = None


@dataclass
class Shift:
    id: str
    employee_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None


@dataclass(frozen=True)
class TableRef:
    id: str
    name: str
    max_seats: int


@dataclass(frozen=True)
class CustomerRef:
    id: str
    name: str


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"


ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.SEATED, ReservationStatus.CANCELED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.SEATED: frozenset({ReservationStatus.COMPLETED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}


@dataclass
class Reservation:
    id: str
    customer_id: Optional[str]
    table_id: str
    time: datetime
    party_size: int
    status: ReservationStatus = ReservationStatus.PENDING
    history: list[ReservationStatus] = field(default_factory=list)

    def can_transition(self, target: ReservationStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def transition(self, target: ReservationStatus) -> None:
        if not self.can_transition(target):
            raise InvalidTransitionError(f"reservation {self.id}: {self.status.value} -> {target.value}")
        self.history.append(self.status)
        self.status = target


@dataclass(frozen=True)
class TaxRate:
    id: str
    name: str
    rate: float
    is_default: bool = False


@dataclass(frozen=True)
class Adjustment:
    """A discount or service charge. Discount amounts are negative magnitudes."""

    id: str
    name: str
    percentage: Optional[float] = None
    amount: Optional[int] = None


@dataclass(frozen=True)
class Modification:
    id: str
    modifier_id: str
    name: str
    price: int


@dataclass
class LineItem:
    id: str
    item_id: str
    name: str
    unit_price: int
    quantity: int = 1
    modifications: list[Modification] = field(default_factory=list)
    note: Optional[str] = None


class OrderKind(str, Enum):
    WALK_IN = "walk_in"
    RESERVATION = "reservation"


@dataclass
class Order:
    id: str
    kind: OrderKind
    created_at: datetime
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    customer_id: Optional[str] = None
    table_id: Optional[str] = None
    reservation_id: Optional[str] = None
    state: str = "OPEN"
    line_items: list[LineItem] = field(default_factory=list)
    discounts: list[Adjustment] = field(default_factory=list)
    service_charges: list[Adjustment] = field(default_factory=list)
    tax_rates: list[TaxRate] = field(default_factory=list)
    total: Optional[int] = None

    @property
    def finalized(self) -> bool:
        return self.total is not None


class PaymentMethod(str, Enum):
    CARD = "CARD"
    CASH = "CASH"


@dataclass
class Payment:
    id: str
    order_id: str
    amount: int
    method: PaymentMethod
    tip_amount: int = 0


class RefundKind(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


@dataclass(frozen=True)
class Refund:
    id: str
    payment_id: str
    order_id: str
    amount: int
    reason: str
    kind: RefundKind


@dataclass
class PhaseCounters:
    success_count: int = 0
    error_count: int = 0

    def record(self, ok: bool) -> None:
        if ok:
            self.success_count += 1
        else:
            self.error_count += 1

    def merge(self, other: "PhaseCounters") -> None:
        self.success_count += other.success_count
        self.error_count += other.error_count

    def as_dict(self) -> dict[str, int]:
        return {"success_count": self.success_count, "error_count": self.error_count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhaseCounters":
        return cls(int(data.get("success_count", 0)), int(data.get("error_count", 0)))


class PhaseLedger:
    """Per-phase counters a component accumulates over one simulated day."""

    def __init__(self, *phases: str):
        self.phases = phases
        self.counters: dict[str, PhaseCounters] = {}
        self.reset()

    def reset(self) -> None:
        self.counters = {name: PhaseCounters() for name in self.phases}

    def ok(self, phase: str) -> None:
        self.counters[phase].record(True)

    def failed(self, phase: str) -> None:
        self.counters[phase].record(False)

    def take(self) -> dict[str, PhaseCounters]:
        taken = self.counters
        self.reset()
        return taken


@dataclass(frozen=True)
class DayRollup:
    """Per-day aggregates; the persisted form of a DaySummary."""

    date: date
    order_count: int
    revenue: int
    refunds: int
    tips: int = 0
    reservation_count: int = 0
    employees_working: int = 0
    items_sold: dict[str, int] = field(default_factory=dict)
    employee_orders: dict[str, int] = field(default_factory=dict)
    customer_ids: tuple[str, ...] = ()
    phases: dict[str, dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "order_count": self.order_count,
            "revenue": self.revenue,
            "refunds": self.refunds,
            "tips": self.tips,
            "reservation_count": self.reservation_count,
            "employees_working": self.employees_working,
            "items_sold": dict(self.items_sold),
            "employee_orders": dict(self.employee_orders),
            "customer_ids": list(self.customer_ids),
            "phases": {name: dict(counts) for name, counts in self.phases.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DayRollup":
        return cls(
            date=date.fromisoformat(data["date"]),
            order_count=int(data.get("order_count", 0)),
            revenue=int(data.get("revenue", 0)),
            refunds=int(data.get("refunds", 0)),
            tips=int(data.get("tips", 0)),
            reservation_count=int(data.get("reservation_count", 0)),
            employees_working=int(data.get("employees_working", 0)),
            items_sold={str(k): int(v) for k, v in (data.get("items_sold") or {}).items()},
            employee_orders={str(k): int(v) for k, v in (data.get("employee_orders") or {}).items()},
            customer_ids=tuple(data.get("customer_ids") or ()),
            phases={
                str(name): PhaseCounters.from_dict(counts).as_dict()
                for name, counts in (data.get("phases") or {}).items()
            },
        )


@dataclass(frozen=True)
class DaySummary:
    date: date
    employees_working: tuple[StaffMember, ...]
    reservations: tuple[Reservation, ...]
    orders: tuple[Order, ...]
    payments: tuple[Payment, ...]
    refunds: tuple[Refund, ...]
    phases: dict[str, PhaseCounters] = field(default_factory=dict)

    @property
    def revenue(self) -> int:
        return sum(p.amount for p in self.payments)

    @property
    def refund_total(self) -> int:
        return sum(r.amount for r in self.refunds)

    @property
    def tip_total(self) -> int:
        return sum(p.tip_amount for p in self.payments)

    @property
    def items_sold(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for order in self.orders:
            for line in order.line_items:
                counts[line.name] = counts.get(line.name, 0) + line.quantity
        return counts

    @property
    def employee_orders(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for order in self.orders:
            key = order.employee_name or order.employee_id
            if key:
                counts[key] = counts.get(key, 0) + 1
        return counts

    @property
    def customer_ids(self) -> tuple[str, ...]:
        return tuple(o.customer_id for o in self.orders if o.customer_id)

    def rollup(self) -> DayRollup:
        return DayRollup(
            date=self.date,
            order_count=len(self.orders),
            revenue=self.revenue,
            refunds=self.refund_total,
            tips=self.tip_total,
            reservation_count=len(self.reservations),
            employees_working=len(self.employees_working),
            items_sold=self.items_sold,
            employee_orders=self.employee_orders,
            customer_ids=self.customer_ids,
            phases={name: counters.as_dict() for name, counters in self.phases.items()},
        )
