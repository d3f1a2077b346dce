from datetime import date

import pytest

from restaurant_sim.app.analytics.period import COMPUTATION_VERSION, PeriodAnalyticsAggregator
from restaurant_sim.app.sim.records import DayRollup


def _day(d, orders, revenue, refunds=0, items=None, employees=None, customers=(), phases=None):
    return DayRollup(
        date=d,
        order_count=orders,
        revenue=revenue,
        refunds=refunds,
        tips=revenue // 10,
        items_sold=items or {},
        employee_orders=employees or {},
        customer_ids=tuple(customers),
        phases=phases or {},
    )


DAYS = [
    _day(date(2024, 3, 1), 3, 3000, 500, {"Burger": 2, "Soda": 3}, {"Mary": 2, "John": 1}, ["C1", "C2"]),
    _day(date(2024, 3, 2), 5, 4500, 0, {"Burger": 4, "Fries": 1}, {"John": 5}, ["C1"]),
    _day(date(2024, 3, 3), 5, 5000, 250, {"Soda": 2}, {"Mary": 5}, ["C3"]),
]


def test_summary_totals_and_net_revenue():
    summary = PeriodAnalyticsAggregator().summarize(DAYS, date(2024, 3, 1), 3)

    assert summary.total_orders == 13
    assert summary.total_revenue == 12500
    assert summary.total_refunds == 750
    assert summary.net_revenue == 11750
    assert summary.total_tips == 1250
    assert summary.average_order_value == 961.54
    assert summary.customers_served == 3
    assert summary.items_sold == 12
    assert summary.end_date == date(2024, 3, 3)


def test_busiest_day_keeps_the_earliest_tie():
    summary = PeriodAnalyticsAggregator().summarize(DAYS, date(2024, 3, 1), 3)

    assert summary.busiest_day == date(2024, 3, 2)
    assert summary.busiest_day_orders == 5


def test_rankings_are_stable_on_ties():
    summary = PeriodAnalyticsAggregator().summarize(DAYS, date(2024, 3, 1), 3)

    assert summary.top_items == [("Burger", 6), ("Soda", 5), ("Fries", 1)]
    assert summary.employee_orders == [("Mary", 7), ("John", 6)]


def test_days_outside_the_window_are_ignored():
    summary = PeriodAnalyticsAggregator().summarize(DAYS, date(2024, 3, 2), 1)

    assert summary.total_orders == 5
    assert [row["date"] for row in summary.daily_revenue] == ["2024-03-02"]


def test_empty_period_has_zero_average():
    summary = PeriodAnalyticsAggregator().summarize([], date(2024, 4, 1), 7)

    assert summary.total_orders == 0
    assert summary.average_order_value == 0.0
    assert summary.busiest_day is None
    assert summary.busiest_day_orders == 0
    assert summary.as_dict()["computation_version"] == COMPUTATION_VERSION


def test_invalid_windows_are_rejected():
    aggregator = PeriodAnalyticsAggregator()

    with pytest.raises(ValueError):
        aggregator.summarize(DAYS, date(2024, 3, 1), 0)
    with pytest.raises(ValueError):
        aggregator.sales_report(DAYS, date(2024, 3, 3), date(2024, 3, 1))


def test_sales_report_counts_repeat_customers():
    report = PeriodAnalyticsAggregator().sales_report(DAYS, date(2024, 3, 1), date(2024, 3, 3))

    assert report["totals"]["net_revenue"] == 11750
    assert report["customers"] == {"total_served": 3, "repeat_visits": 1}
    assert report["top_sellers"][0] == {"name": "Burger", "quantity": 6}
    assert report["top_employees"][0] == {"employee": "Mary", "orders": 7}
    assert sum(row["net_revenue"] for row in report["daily"]) == 11750


def test_item_sales_report_shares_and_averages():
    report = PeriodAnalyticsAggregator().item_sales_report(DAYS, date(2024, 3, 1), date(2024, 3, 3))

    assert report["total_quantity"] == 12
    burger = report["items"][0]
    assert burger["name"] == "Burger"
    assert burger["daily_sales"] == {"2024-03-01": 2, "2024-03-02": 4}
    assert burger["avg_daily_sales"] == 2.0
    assert burger["percentage_of_total"] == 50.0
    assert sum(item["total_quantity"] for item in report["items"]) == 12


def test_phase_counters_are_summed_across_days():
    days = [
        _day(date(2024, 3, 1), 2, 2000, phases={"payments": {"success_count": 2, "error_count": 1}}),
        _day(
            date(2024, 3, 2),
            1,
            1000,
            phases={
                "payments": {"success_count": 1, "error_count": 0},
                "refunds": {"success_count": 0, "error_count": 2},
            },
        ),
    ]

    summary = PeriodAnalyticsAggregator().summarize(days, date(2024, 3, 1), 2)

    assert summary.phases == {
        "payments": {"success_count": 3, "error_count": 1},
        "refunds": {"success_count": 0, "error_count": 2},
    }
    assert summary.as_dict()["phases"] == summary.phases
