import random
from datetime import date, datetime, timezone

from restaurant_sim.app.sim.records import StaffMember
from restaurant_sim.app.sim.schedule import from_epoch_ms
from restaurant_sim.app.sim.scheduler import ShiftScheduler
from restaurant_sim.app.sim.tuning import SimulationTuning

DAY = date(2024, 3, 1)


def _staff(n):
    return [StaffMember(id=f"E{i}", name=f"Employee {i}") for i in range(n)]


def test_selection_size_rounds_half_up(gateway, sink):
    scheduler = ShiftScheduler(gateway, tuning=SimulationTuning(staffing_fraction=(0.65, 0.65)), sink=sink)

    morning, evening = scheduler.select(_staff(10), random.Random(1))

    # 10 * 0.65 = 6.5 -> 7, of which floor(7 / 2) work mornings
    assert len(morning) == 3
    assert len(evening) == 4
    assert not {e.id for e in morning} & {e.id for e in evening}


def test_selection_stays_within_staffing_fraction(gateway, sink):
    scheduler = ShiftScheduler(gateway, sink=sink)
    for seed in range(25):
        morning, evening = scheduler.select(_staff(15), random.Random(seed))
        assert 9 <= len(morning) + len(evening) <= 12


def test_each_selected_employee_gets_one_closed_shift(gateway, sink):
    scheduler = ShiftScheduler(gateway, tuning=SimulationTuning(staffing_fraction=(0.8, 0.8)), sink=sink)

    result = scheduler.schedule(DAY, _staff(10), random.Random(3))

    shifts = gateway.records("shift")
    assert result.shifts_created == 8
    assert result.error_count == 0
    assert sorted(s["employee"]["id"] for s in shifts) == sorted(e.id for e in result.employees_assigned)
    assert all(s["outTime"] > s["inTime"] for s in shifts)


def test_shift_windows_follow_morning_and_evening_bounds(gateway, sink):
    scheduler = ShiftScheduler(gateway, tuning=SimulationTuning(staffing_fraction=(1.0, 1.0)), sink=sink)

    result = scheduler.schedule(DAY, _staff(6), random.Random(9))

    morning = result.shifts[:3]
    evening = result.shifts[3:]
    for shift in morning:
        assert datetime(2024, 3, 1, 7, 0, tzinfo=timezone.utc) <= shift.clock_in <= datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc) <= shift.clock_out <= datetime(2024, 3, 1, 17, 0, tzinfo=timezone.utc)
    for shift in evening:
        assert datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc) <= shift.clock_in <= datetime(2024, 3, 1, 17, 0, tzinfo=timezone.utc)
        assert shift.clock_out == datetime(2024, 3, 1, 23, 59, tzinfo=timezone.utc)

    stored = {s["id"]: s for s in gateway.records("shift")}
    first = result.shifts[0]
    assert from_epoch_ms(stored[first.id]["inTime"]) == first.clock_in


def test_failing_employee_does_not_block_the_rest(gateway, sink):
    gateway.fail_on("create", "shift", times=1)
    scheduler = ShiftScheduler(gateway, tuning=SimulationTuning(staffing_fraction=(1.0, 1.0)), sink=sink)

    result = scheduler.schedule(DAY, _staff(5), random.Random(2))

    assert result.error_count == 1
    assert result.shifts_created == 4
    assert len(sink.named("schedule.shift_failed")) == 1


def test_no_staff_means_no_shifts(gateway, sink):
    result = ShiftScheduler(gateway, sink=sink).schedule(DAY, [], random.Random(0))

    assert result.as_dict() == {"employees_assigned": 0, "shifts_created": 0, "error_count": 0}
