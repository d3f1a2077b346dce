from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from restaurant_sim.app.analytics.period import PeriodSummary
from restaurant_sim.app.sim.context import MerchantContext, load_context
from restaurant_sim.app.sim.reconciler import ReconciliationReport
from restaurant_sim.app.sim.records import DaySummary, PhaseCounters, PhaseLedger
from restaurant_sim.app.sim.registry import SimulatorServices
from restaurant_sim.app.sim.rng import rng_for
from restaurant_sim.app.sim.schedule import period_dates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    setup: Optional[ReconciliationReport]
    days: tuple[DaySummary, ...]
    period: PeriodSummary


class RestaurantSimulator:
    """Reconcile reference data once, then generate one day at a time."""

    def __init__(self, services: SimulatorServices):
        self.services = services

    @property
    def seed(self) -> int:
        return self.services.seed

    def setup(self) -> ReconciliationReport:
        return self.services.reconciler.run()

    def load_context(self) -> MerchantContext:
        return load_context(self.services.store, self.services.gateway)

    def simulate_day(self, day: date, context: MerchantContext) -> DaySummary:
        s = self.services
        for ledger in self._ledgers():
            ledger.reset()
        schedule = s.scheduler.schedule(day, context.employees, rng_for(self.seed, "staffing", day))
        staff = schedule.employees_assigned

        reservations = s.reservations.generate(day, context, rng_for(self.seed, "reservations", day))
        orders = s.orders.build_walk_ins(day, context, staff, rng_for(self.seed, "walk_ins", day))
        orders += s.orders.build_reservation_orders(
            day, context, staff, reservations, rng_for(self.seed, "reservation_orders", day)
        )

        payments = s.payments.settle_all(orders, rng_for(self.seed, "payments", day))
        refunds = s.refunds.process(orders, rng_for(self.seed, "refunds", day))

        phases = {"shifts": PhaseCounters(schedule.shifts_created, schedule.error_count)}
        for ledger in self._ledgers():
            phases.update(ledger.take())

        summary = DaySummary(
            date=day,
            employees_working=tuple(staff),
            reservations=tuple(reservations),
            orders=tuple(orders),
            payments=tuple(payments),
            refunds=tuple(refunds),
            phases=phases,
        )
        s.sink.emit(
            "simulation.day",
            day=day.isoformat(),
            orders=len(orders),
            revenue=summary.revenue,
            refunds=summary.refund_total,
            errors=sum(c.error_count for c in phases.values()),
        )
        return summary

    def _ledgers(self) -> tuple[PhaseLedger, ...]:
        s = self.services
        return (s.reservations.ledger, s.orders.ledger, s.payments.ledger, s.refunds.ledger)

    def run(
        self,
        start_date: date,
        days: int,
        *,
        skip_setup: bool = False,
        on_day: Optional[Callable[[DaySummary], None]] = None,
    ) -> SimulationResult:
        if days < 1:
            raise ValueError("days must be >= 1")
        report = None if skip_setup else self.setup()
        context = self.load_context()

        summaries: list[DaySummary] = []
        for day in period_dates(start_date=start_date, days=days):
            summary = self.simulate_day(day, context)
            summaries.append(summary)
            if on_day is not None:
                on_day(summary)

        period = self.services.analytics.summarize(summaries, start_date, days)
        logger.info(
            "simulation finished: days=%s orders=%s revenue=%s net=%s",
            days,
            period.total_orders,
            period.total_revenue,
            period.net_revenue,
        )
        return SimulationResult(setup=report, days=tuple(summaries), period=period)
