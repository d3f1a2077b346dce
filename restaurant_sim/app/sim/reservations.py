from __future__ import annotations

import random
from datetime import date, datetime
from typing import Optional

from restaurant_sim.app.errors import GatewayError, InvalidTransitionError
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.sim.context import MerchantContext
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.records import PhaseLedger, Reservation, ReservationStatus
from restaurant_sim.app.sim.schedule import slot_times, to_epoch_ms
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning


class ReservationGenerator:
    """Create a day's reservations and drive each through its status lifecycle."""

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
        self.ledger = PhaseLedger("reservations", "reservation_updates")

    def generate(self, day: date, context: MerchantContext, rng: random.Random) -> list[Reservation]:
        if not context.tables:
            self.sink.emit("reservations.skipped", day=day.isoformat(), reason="no tables")
            return []

        t = self.tuning
        slots = slot_times(
            day,
            first_minute=t.reservation_first_minute,
            last_minute=t.reservation_last_minute,
            step=t.reservation_slot_minutes,
        )
        count = rng.randint(*t.reservations_per_day)
        reservations: list[Reservation] = []
        for _ in range(count):
            customer = rng.choice(context.customers) if context.customers else None
            table = rng.choice(context.tables)
            when = rng.choice(slots)
            party_size = rng.randint(1, max(1, table.max_seats))
            payload = {
                "table": {"id": table.id},
                "time": to_epoch_ms(when),
                "partySize": party_size,
                "status": ReservationStatus.PENDING.value,
            }
            if customer is not None:
                payload["customer"] = {"id": customer.id}
            try:
                record = self.gateway.create("reservation", payload)
            except GatewayError as exc:
                self.ledger.failed("reservations")
                self.sink.emit("reservations.create_failed", day=day.isoformat(), error=str(exc))
                continue
            self.ledger.ok("reservations")
            reservations.append(
                Reservation(
                    id=record["id"],
                    customer_id=customer.id if customer else None,
                    table_id=table.id,
                    time=when,
                    party_size=party_size,
                )
            )

        self.sink.emit("reservations.day", day=day.isoformat(), created=len(reservations), planned=count)
        return reservations

    def _transition(self, reservation: Reservation, target: ReservationStatus, extra: Optional[dict] = None) -> Reservation:
        if not reservation.can_transition(target):
            raise InvalidTransitionError(
                f"reservation {reservation.id}: {reservation.status.value} -> {target.value}"
            )
        try:
            self.gateway.update("reservation", reservation.id, {"status": target.value, **(extra or {})})
        except GatewayError:
            self.ledger.failed("reservation_updates")
            raise
        self.ledger.ok("reservation_updates")
        reservation.transition(target)
        return reservation

    def check_in(self, reservation: Reservation, at: Optional[datetime] = None) -> Reservation:
        checked_in = at or reservation.time
        return self._transition(
            reservation,
            ReservationStatus.SEATED,
            {"checkedIn": True, "checkedInTime": to_epoch_ms(checked_in)},
        )

    def complete(self, reservation: Reservation) -> Reservation:
        return self._transition(reservation, ReservationStatus.COMPLETED)

    def cancel(self, reservation: Reservation) -> Reservation:
        return self._transition(reservation, ReservationStatus.CANCELED)

    def mark_no_show(self, reservation: Reservation) -> Reservation:
        return self._transition(reservation, ReservationStatus.NO_SHOW)
