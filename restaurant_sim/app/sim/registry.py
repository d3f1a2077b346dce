from __future__ import annotations

from enum import Enum
from functools import cached_property
from typing import Any, Optional

from restaurant_sim.app.analytics.period import PeriodAnalyticsAggregator
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.services.setup_state_service import SetupStateStore
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.orders import OrderBuilder
from restaurant_sim.app.sim.payments import PaymentSettlement, RefundProcessor
from restaurant_sim.app.sim.reconciler import EntityReconciler
from restaurant_sim.app.sim.reservations import ReservationGenerator
from restaurant_sim.app.sim.scheduler import ShiftScheduler
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning
from restaurant_sim.app.sim.valuation import OrderValuationEngine


class Component(str, Enum):
    GATEWAY = "gateway"
    STORE = "store"
    RECONCILER = "reconciler"
    SCHEDULER = "scheduler"
    RESERVATIONS = "reservations"
    VALUATION = "valuation"
    ORDERS = "orders"
    PAYMENTS = "payments"
    REFUNDS = "refunds"
    ANALYTICS = "analytics"


class SimulatorServices:
    """
    Explicit registry of simulator components.

    Each component is built on first access and shared afterwards; all of them
    share one gateway, one store, one tuning and one event sink.
    """

    def __init__(
        self,
        gateway: RemoteEntityGateway,
        store: SetupStateStore,
        *,
        tuning: SimulationTuning = DEFAULT_TUNING,
        sink: Optional[EventSink] = None,
        seed: int = 1337,
        strict_detection: bool = False,
    ):
        self.gateway = gateway
        self.store = store
        self.tuning = tuning
        self.sink = sink or LoggingEventSink()
        self.seed = seed
        self.strict_detection = strict_detection

    @cached_property
    def reconciler(self) -> EntityReconciler:
        return EntityReconciler(
            self.gateway,
            self.store,
            sink=self.sink,
            seed=self.seed,
            strict_detection=self.strict_detection,
        )

    @cached_property
    def scheduler(self) -> ShiftScheduler:
        return ShiftScheduler(self.gateway, tuning=self.tuning, sink=self.sink)

    @cached_property
    def reservations(self) -> ReservationGenerator:
        return ReservationGenerator(self.gateway, tuning=self.tuning, sink=self.sink)

    @cached_property
    def valuation(self) -> OrderValuationEngine:
        return OrderValuationEngine(self.sink)

    @cached_property
    def orders(self) -> OrderBuilder:
        return OrderBuilder(self.gateway, self.valuation, self.reservations, tuning=self.tuning, sink=self.sink)

    @cached_property
    def payments(self) -> PaymentSettlement:
        return PaymentSettlement(self.gateway, tuning=self.tuning, sink=self.sink)

    @cached_property
    def refunds(self) -> RefundProcessor:
        return RefundProcessor(self.gateway, tuning=self.tuning, sink=self.sink)

    @cached_property
    def analytics(self) -> PeriodAnalyticsAggregator:
        return PeriodAnalyticsAggregator()

    def get(self, component: Component) -> Any:
        return getattr(self, Component(component).value)
