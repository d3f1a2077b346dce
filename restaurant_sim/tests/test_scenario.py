from datetime import date

from restaurant_sim.app.sim.context import MenuEntry, MerchantContext
from restaurant_sim.app.sim.engine import RestaurantSimulator
from restaurant_sim.app.sim.records import ReservationStatus, StaffMember, TableRef, TaxRate
from restaurant_sim.app.sim.registry import Component, SimulatorServices
from restaurant_sim.app.sim.rng import rng_for
from restaurant_sim.app.sim.tuning import SimulationTuning

DAY = date(2024, 3, 1)


def test_single_order_day_end_to_end(gateway, store, sink):
    tuning = SimulationTuning(
        reservations_per_day=(1, 1),
        walk_ins_per_day=(1, 1),
        walk_in_items=(1, 1),
        walk_in_quantity=(1, 1),
        customer_probability=0.0,
        walk_in_modifier_probability=0.0,
        note_probability=0.0,
        discount_probability=0.0,
        card_probability=1.0,
        tip_probability=1.0,
        tip_percent=(20, 20),
        refunds_per_day=(0, 0),
    )
    services = SimulatorServices(gateway, store, tuning=tuning, sink=sink, seed=11)
    context = MerchantContext(
        employees=[StaffMember("E1", "Mary Smith")],
        menu=[MenuEntry("I1", "Classic Burger", 1000)],
        tax_rates=[TaxRate("T1", "Sales Tax", 8.0, True)],
        tables=[TableRef("TB1", "Patio 1", 4)],
    )

    summary = RestaurantSimulator(services).simulate_day(DAY, context)

    [reservation] = summary.reservations
    assert reservation.customer_id is None
    assert reservation.status is ReservationStatus.PENDING
    [order] = summary.orders
    [payment] = summary.payments
    assert order.total == 1080
    assert payment.amount == 1080
    assert payment.tip_amount == 216
    assert summary.revenue == 1080
    assert summary.refunds == ()
    assert summary.employee_orders == {"Mary Smith": 1}
    assert gateway.get("payment", payment.id)["tipAmount"] == 216
    assert summary.phases["orders"].as_dict() == {"success_count": 1, "error_count": 0}
    assert summary.phases["line_items"].success_count == 1
    assert summary.phases["taxes"].success_count == 1
    assert summary.phases["payments"].success_count == 1
    assert summary.phases["tips"].success_count == 1
    assert summary.phases["reservations"].success_count == 1
    assert summary.phases["refunds"].as_dict() == {"success_count": 0, "error_count": 0}
    assert "shifts" in summary.phases


def test_multi_day_stub_run_keeps_money_consistent(gateway, store, sink):
    services = SimulatorServices(gateway, store, sink=sink, seed=7)

    result = RestaurantSimulator(services).run(DAY, 3)

    assert result.setup is not None and result.setup.failed == 0
    assert len(result.days) == 3
    for day in result.days:
        paid = {p.order_id: p for p in day.payments}
        for order in day.orders:
            if order.id in paid:
                assert paid[order.id].amount == order.total
        for refund in day.refunds:
            assert 0 < refund.amount <= paid[refund.order_id].amount
        assert len({r.order_id for r in day.refunds}) == len(day.refunds)

    period = result.period
    assert period.net_revenue == period.total_revenue - period.total_refunds
    assert period.total_revenue == sum(d.revenue for d in result.days)
    assert sum(row["revenue"] for row in period.daily_revenue) == period.total_revenue
    assert period.total_orders == sum(len(d.orders) for d in result.days)


def test_second_run_skips_setup_creates(gateway, store, sink):
    services = SimulatorServices(gateway, store, sink=sink, seed=7)
    RestaurantSimulator(services).run(DAY, 1)
    categories_created = gateway.calls[("create", "category")]

    again = RestaurantSimulator(SimulatorServices(gateway, store, sink=sink, seed=7)).run(date(2024, 3, 2), 1)

    assert gateway.calls[("create", "category")] == categories_created
    assert again.setup.created == 0


def test_day_streams_are_reproducible():
    first = rng_for(7, "walk_ins", DAY)
    second = rng_for(7, "walk_ins", DAY)
    other = rng_for(7, "walk_ins", date(2024, 3, 2))

    draws = [first.random() for _ in range(5)]
    assert draws == [second.random() for _ in range(5)]
    assert draws != [other.random() for _ in range(5)]


def test_registry_shares_components(gateway, store, sink):
    services = SimulatorServices(gateway, store, sink=sink)

    assert services.get(Component.ORDERS) is services.orders
    assert services.orders.valuation is services.valuation
    assert services.get("reservations") is services.orders.reservations
