from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from restaurant_sim.app.errors import GatewayError
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.schedule import at_minute, to_epoch_ms
from restaurant_sim.app.sim.records import Shift, StaffMember
from restaurant_sim.app.sim.rng import round_half_up
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning


@dataclass
class ScheduleResult:
    employees_assigned: list[StaffMember] = field(default_factory=list)
    shifts: list[Shift] = field(default_factory=list)
    error_count: int = 0

    @property
    def shifts_created(self) -> int:
        return len(self.shifts)

    def as_dict(self) -> dict[str, int]:
        return {
            "employees_assigned": len(self.employees_assigned),
            "shifts_created": self.shifts_created,
            "error_count": self.error_count,
        }


class ShiftScheduler:
    """Put a random subset of staff on a morning or evening shift for one day."""

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

    def select(self, employees: Sequence[StaffMember], rng: random.Random) -> tuple[list[StaffMember], list[StaffMember]]:
        """Return (morning, evening). Half of the selection (rounded down) works mornings."""
        if not employees:
            return [], []
        low, high = self.tuning.staffing_fraction
        count = min(len(employees), round_half_up(len(employees) * rng.uniform(low, high)))
        selected = rng.sample(list(employees), count)
        morning = rng.sample(selected, len(selected) // 2)
        morning_ids = {e.id for e in morning}
        evening = [e for e in selected if e.id not in morning_ids]
        return morning, evening

    def _window(self, day: date, rng: random.Random, *, morning: bool) -> tuple[datetime, datetime]:
        t = self.tuning
        jitter = t.shift_jitter_minutes
        if morning:
            start = at_minute(day, t.morning_start_minute + rng.randint(-jitter, jitter))
            end = at_minute(day, t.shift_change_minute + rng.randint(-jitter, jitter))
        else:
            start = at_minute(day, t.shift_change_minute + rng.randint(-jitter, jitter))
            end = at_minute(day, t.evening_end_minute)
        return start, end

    def schedule(self, day: date, employees: Sequence[StaffMember], rng: random.Random) -> ScheduleResult:
        result = ScheduleResult()
        morning, evening = self.select(employees, rng)
        plan = [(e, True) for e in morning] + [(e, False) for e in evening]
        for employee, is_morning in plan:
            clock_in, clock_out = self._window(day, rng, morning=is_morning)
            ref = {"employee": {"id": employee.id}}
            try:
                opened = self.gateway.create("shift", {**ref, "inTime": to_epoch_ms(clock_in)})
                self.gateway.update(
                    "shift",
                    opened["id"],
                    {**ref, "inTime": to_epoch_ms(clock_in), "outTime": to_epoch_ms(clock_out)},
                )
            except GatewayError as exc:
                result.error_count += 1
                self.sink.emit("schedule.shift_failed", day=day.isoformat(), employee=employee.id, error=str(exc))
                continue
            result.employees_assigned.append(employee)
            result.shifts.append(Shift(opened["id"], employee.id, clock_in, clock_out))

        self.sink.emit("schedule.day", day=day.isoformat(), **result.as_dict())
        return result
