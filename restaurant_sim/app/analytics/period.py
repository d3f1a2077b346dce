from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from restaurant_sim.app.sim.records import DayRollup, DaySummary, PhaseCounters
from restaurant_sim.app.sim.rng import round_money

COMPUTATION_VERSION = "period_analytics_v1"
TOP_ITEMS = 10
TOP_EMPLOYEES = 5

DayLike = Union[DaySummary, DayRollup]


@dataclass(frozen=True)
class PeriodSummary:
    start_date: date
    end_date: date
    days: int
    total_orders: int
    total_revenue: int
    total_refunds: int
    net_revenue: int
    total_tips: int
    average_order_value: float
    busiest_day: Optional[date]
    busiest_day_orders: int
    customers_served: int
    items_sold: int
    top_items: List[Tuple[str, int]] = field(default_factory=list)
    employee_orders: List[Tuple[str, int]] = field(default_factory=list)
    daily_revenue: List[Dict[str, Any]] = field(default_factory=list)
    phases: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days": self.days,
            "total_orders": self.total_orders,
            "total_revenue": self.total_revenue,
            "total_refunds": self.total_refunds,
            "net_revenue": self.net_revenue,
            "total_tips": self.total_tips,
            "average_order_value": self.average_order_value,
            "busiest_day": self.busiest_day.isoformat() if self.busiest_day else None,
            "busiest_day_orders": self.busiest_day_orders,
            "customers_served": self.customers_served,
            "items_sold": self.items_sold,
            "top_items": [{"name": n, "quantity": q} for n, q in self.top_items],
            "employee_orders": [{"employee": e, "orders": c} for e, c in self.employee_orders],
            "daily_revenue": list(self.daily_revenue),
            "phases": {name: dict(counts) for name, counts in self.phases.items()},
            "computation_version": COMPUTATION_VERSION,
        }


def as_rollup(day: DayLike) -> DayRollup:
    return day.rollup() if isinstance(day, DaySummary) else day


def _ranked(counts: Dict[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    # sorted() is stable, so ties keep first-encountered order
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return ranked[:limit] if limit is not None else ranked


def _merge(target: Dict[str, int], source: Dict[str, int]) -> None:
    for key, value in source.items():
        target[key] = target.get(key, 0) + value


class PeriodAnalyticsAggregator:
    """Recompute period analytics from day records on every call."""

    def window(self, days: Iterable[DayLike], start_date: date, end_date: date) -> List[DayRollup]:
        rollups = [as_rollup(d) for d in days]
        in_range = [r for r in rollups if start_date <= r.date <= end_date]
        return sorted(in_range, key=lambda r: r.date)

    def summarize(self, days: Iterable[DayLike], start_date: date, day_count: int) -> PeriodSummary:
        if day_count < 1:
            raise ValueError("day_count must be >= 1")
        end_date = start_date + timedelta(days=day_count - 1)
        rollups = self.window(days, start_date, end_date)

        total_orders = 0
        total_revenue = 0
        total_refunds = 0
        total_tips = 0
        busiest_day: Optional[date] = None
        busiest_orders = -1
        items: Dict[str, int] = {}
        employees: Dict[str, int] = {}
        customers: set[str] = set()
        daily: List[Dict[str, Any]] = []
        phases: Dict[str, PhaseCounters] = {}

        for r in rollups:
            total_orders += r.order_count
            total_revenue += r.revenue
            total_refunds += r.refunds
            total_tips += r.tips
            if r.order_count > busiest_orders:
                busiest_day, busiest_orders = r.date, r.order_count
            _merge(items, r.items_sold)
            _merge(employees, r.employee_orders)
            customers.update(r.customer_ids)
            for name, counts in r.phases.items():
                phases.setdefault(name, PhaseCounters()).merge(PhaseCounters.from_dict(counts))
            daily.append(
                {
                    "date": r.date.isoformat(),
                    "orders": r.order_count,
                    "revenue": r.revenue,
                    "net_revenue": r.revenue - r.refunds,
                }
            )

        average = round_money(total_revenue / total_orders) if total_orders else 0.0
        return PeriodSummary(
            start_date=start_date,
            end_date=end_date,
            days=day_count,
            total_orders=total_orders,
            total_revenue=total_revenue,
            total_refunds=total_refunds,
            net_revenue=total_revenue - total_refunds,
            total_tips=total_tips,
            average_order_value=average,
            busiest_day=busiest_day,
            busiest_day_orders=max(busiest_orders, 0),
            customers_served=len(customers),
            items_sold=sum(items.values()),
            top_items=_ranked(items, TOP_ITEMS),
            employee_orders=_ranked(employees),
            daily_revenue=daily,
            phases={name: counters.as_dict() for name, counters in phases.items()},
        )

    def sales_report(self, days: Sequence[DayLike], start_date: date, end_date: date) -> Dict[str, Any]:
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        summary = self.summarize(days, start_date, (end_date - start_date).days + 1)
        visits: Counter = Counter()
        for r in self.window(days, start_date, end_date):
            visits.update(r.customer_ids)
        return {
            "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            "totals": {
                "orders": summary.total_orders,
                "revenue": summary.total_revenue,
                "refunds": summary.total_refunds,
                "net_revenue": summary.net_revenue,
                "tips": summary.total_tips,
                "average_order_value": summary.average_order_value,
            },
            "top_sellers": [{"name": n, "quantity": q} for n, q in summary.top_items],
            "top_employees": [{"employee": e, "orders": c} for e, c in summary.employee_orders[:TOP_EMPLOYEES]],
            "customers": {
                "total_served": len(visits),
                "repeat_visits": sum(1 for count in visits.values() if count > 1),
            },
            "daily": summary.daily_revenue,
        }

    def item_sales_report(self, days: Sequence[DayLike], start_date: date, end_date: date) -> Dict[str, Any]:
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        rollups = self.window(days, start_date, end_date)
        span = (end_date - start_date).days + 1

        per_item: Dict[str, Dict[str, int]] = {}
        for r in rollups:
            for name, qty in r.items_sold.items():
                daily = per_item.setdefault(name, {})
                daily[r.date.isoformat()] = daily.get(r.date.isoformat(), 0) + qty

        totals = {name: sum(daily.values()) for name, daily in per_item.items()}
        grand_total = sum(totals.values())
        items = []
        for name, quantity in _ranked(totals):
            items.append(
                {
                    "name": name,
                    "total_quantity": quantity,
                    "daily_sales": per_item[name],
                    "avg_daily_sales": round_money(quantity / span),
                    "percentage_of_total": round_money(quantity * 100 / grand_total) if grand_total else 0.0,
                }
            )
        return {
            "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            "total_quantity": grand_total,
            "items": items,
        }
