import random
from datetime import date, timedelta

from restaurant_sim.app.sim.context import MenuEntry, MerchantContext, ModifierOption
from restaurant_sim.app.sim.orders import OrderBuilder
from restaurant_sim.app.sim.records import (
    Adjustment,
    CustomerRef,
    OrderKind,
    Reservation,
    ReservationStatus,
    StaffMember,
    TableRef,
    TaxRate,
)
from restaurant_sim.app.sim.reservations import ReservationGenerator
from restaurant_sim.app.sim.schedule import at_minute
from restaurant_sim.app.sim.tuning import SimulationTuning
from restaurant_sim.app.sim.valuation import OrderValuationEngine

DAY = date(2024, 3, 1)
STAFF = [StaffMember("E1", "Mary Smith"), StaffMember("E2", "John Lee")]


def _context():
    return MerchantContext(
        employees=list(STAFF),
        menu=[
            MenuEntry("I1", "Classic Burger", 1295, ("G1",)),
            MenuEntry("I2", "French Fries", 495, ("G2",)),
            MenuEntry("I3", "Soda", 295, ("G2",)),
            MenuEntry("I4", "Cheesecake", 695),
        ],
        modifiers={
            "G1": [ModifierOption("M1", "Bacon", 200)],
            "G2": [ModifierOption("M2", "Large", 400)],
        },
        discounts=[Adjustment("D1", "Happy Hour", percentage=15)],
        tax_rates=[TaxRate("T1", "Sales Tax", 8.5, True), TaxRate("T2", "Alcohol Tax", 10.0)],
        tables=[TableRef("TB1", "Main Dining 1", 8)],
        customers=[CustomerRef("C1", "Mary Smith")],
    )


def _builder(gateway, sink, **tuning):
    t = SimulationTuning(**tuning)
    valuation = OrderValuationEngine(sink)
    return OrderBuilder(gateway, valuation, ReservationGenerator(gateway, tuning=t, sink=sink), tuning=t, sink=sink)


def _reservation(gateway, party_size, customer_id="C1"):
    record = gateway.create("reservation", {"status": "PENDING"})
    return Reservation(record["id"], customer_id, "TB1", at_minute(DAY, 19 * 60), party_size)


def test_walk_ins_use_distinct_items_and_default_taxes(gateway, sink):
    builder = _builder(
        gateway,
        sink,
        walk_ins_per_day=(2, 2),
        walk_in_items=(3, 3),
        walk_in_quantity=(2, 2),
        walk_in_modifier_probability=0.0,
        discount_probability=0.0,
        note_probability=0.0,
    )

    orders = builder.build_walk_ins(DAY, _context(), STAFF, random.Random(5))

    assert len(orders) == 2
    for order in orders:
        assert order.kind is OrderKind.WALK_IN
        assert len({line.item_id for line in order.line_items}) == 3
        assert all(line.quantity == 2 for line in order.line_items)
        assert [t.name for t in order.tax_rates] == ["Sales Tax"]
        assert order.total == OrderValuationEngine().total(order)
        assert gateway.get("order", order.id)["total"] == order.total
        assert 11 <= order.created_at.hour <= 22


def test_walk_in_item_count_never_exceeds_menu(gateway, sink):
    builder = _builder(gateway, sink, walk_ins_per_day=(1, 1), walk_in_items=(9, 9))

    [order] = builder.build_walk_ins(DAY, _context(), STAFF, random.Random(1))

    assert len(order.line_items) == 4


def test_modifiers_notes_and_discounts_are_attached(gateway, sink):
    builder = _builder(
        gateway,
        sink,
        walk_ins_per_day=(1, 1),
        walk_in_items=(2, 2),
        walk_in_modifier_probability=1.0,
        note_probability=1.0,
        discount_probability=1.0,
    )

    [order] = builder.build_walk_ins(DAY, _context(), STAFF, random.Random(2))

    with_groups = [line for line in order.line_items if line.item_id != "I4"]
    assert all(len(line.modifications) == 1 for line in with_groups)
    assert all(line.note for line in order.line_items)
    assert [d.name for d in order.discounts] == ["Happy Hour"]
    assert len(gateway.records("order_discount")) == 1


def test_reservation_order_flow(gateway, sink):
    builder = _builder(gateway, sink, reservation_modifier_probability=0.0)
    reservation = _reservation(gateway, party_size=3)

    [order] = builder.build_reservation_orders(DAY, _context(), STAFF, [reservation], random.Random(3))

    # 3 guests * 1.5 = 4.5 items, rounded half up
    assert len(order.line_items) == 5
    assert all(line.quantity == 1 for line in order.line_items)
    assert order.kind is OrderKind.RESERVATION
    assert order.reservation_id == reservation.id
    assert order.created_at == reservation.time + timedelta(minutes=15)
    assert order.service_charges == []
    assert reservation.status is ReservationStatus.COMPLETED


def test_large_party_gets_automatic_gratuity(gateway, sink):
    builder = _builder(gateway, sink)
    reservation = _reservation(gateway, party_size=6)

    [order] = builder.build_reservation_orders(DAY, _context(), STAFF, [reservation], random.Random(4))

    assert len(order.line_items) == 9
    assert [(c.name, c.percentage) for c in order.service_charges] == [("18% Gratuity (Party of 6)", 18)]
    valuation = OrderValuationEngine().value_order(order)
    assert valuation.charge_total > 0
    assert order.total == valuation.total


def test_reservation_without_customer_is_not_ordered(gateway, sink):
    builder = _builder(gateway, sink)
    reservation = _reservation(gateway, party_size=2, customer_id=None)

    assert builder.build_reservation_orders(DAY, _context(), STAFF, [reservation], random.Random(0)) == []
    assert reservation.status is ReservationStatus.PENDING


def test_no_show_probability_marks_reservations(gateway, sink):
    builder = _builder(gateway, sink, no_show_probability=1.0)
    reservation = _reservation(gateway, party_size=2)

    assert builder.build_reservation_orders(DAY, _context(), STAFF, [reservation], random.Random(0)) == []
    assert reservation.status is ReservationStatus.NO_SHOW


def test_finalize_failure_keeps_order_without_total(gateway, sink):
    gateway.fail_on("update", "order", match=lambda payload: "total" in payload)
    builder = _builder(gateway, sink, walk_ins_per_day=(1, 1))

    [order] = builder.build_walk_ins(DAY, _context(), STAFF, random.Random(6))

    assert order.total is None
    assert order.line_items
    assert sink.named("orders.finalize_failed")[0]["order"] == order.id


def test_line_item_failure_only_drops_that_item(gateway, sink):
    gateway.fail_on("create", "line_item", times=1)
    builder = _builder(gateway, sink, walk_ins_per_day=(1, 1), walk_in_items=(3, 3))

    [order] = builder.build_walk_ins(DAY, _context(), STAFF, random.Random(7))

    assert len(order.line_items) == 2
    assert order.total is not None
    assert builder.ledger.counters["line_items"].as_dict() == {"success_count": 2, "error_count": 1}
    assert builder.ledger.counters["orders"].success_count == 1


def test_empty_menu_produces_no_walk_ins(gateway, sink):
    builder = _builder(gateway, sink)

    assert builder.build_walk_ins(DAY, MerchantContext(employees=list(STAFF)), STAFF, random.Random(0)) == []
    assert gateway.calls[("create", "order")] == 0
