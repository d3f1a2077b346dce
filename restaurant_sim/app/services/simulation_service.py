from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from restaurant_sim.app.analytics.period import PeriodAnalyticsAggregator
from restaurant_sim.app.config import Settings
from restaurant_sim.app.errors import GatewayError, NotFoundError
from restaurant_sim.app.integrations import get_gateway
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.services.setup_state_service import SetupStateStore
from restaurant_sim.app.sim.engine import RestaurantSimulator
from restaurant_sim.app.sim.events import EventSink, LoggingEventSink
from restaurant_sim.app.sim.models import SimulationDay, SimulationRun
from restaurant_sim.app.sim.reconciler import PAGE_SIZE
from restaurant_sim.app.sim.records import DayRollup, DaySummary, PhaseCounters
from restaurant_sim.app.sim.registry import SimulatorServices
from restaurant_sim.app.sim.tuning import DEFAULT_TUNING, SimulationTuning

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_services(
    db: Session,
    settings: Settings,
    *,
    gateway: Optional[RemoteEntityGateway] = None,
    tuning: SimulationTuning = DEFAULT_TUNING,
    sink: Optional[EventSink] = None,
    seed: Optional[int] = None,
) -> SimulatorServices:
    return SimulatorServices(
        gateway or get_gateway(settings, db),
        SetupStateStore(db),
        tuning=tuning,
        sink=sink,
        seed=settings.seed if seed is None else seed,
        strict_detection=settings.strict_detection,
    )


# --- setup ---

def run_setup(
    db: Session,
    settings: Settings,
    *,
    gateway: Optional[RemoteEntityGateway] = None,
    sink: Optional[EventSink] = None,
) -> dict[str, Any]:
    services = build_services(db, settings, gateway=gateway, sink=sink)
    report = services.reconciler.run()
    return report.as_dict()


def setup_status(db: Session) -> dict[str, Any]:
    store = SetupStateStore(db)
    return {"steps": store.list_steps(), "entities": store.creation_summary()}


def reset_step(db: Session, name: str) -> bool:
    return SetupStateStore(db).reset_step(name)


# --- teardown ---

# children before parents
TEARDOWN_ORDER = (
    "refund",
    "payment",
    "order",
    "reservation",
    "shift",
    "customer",
    "table",
    "discount",
    "menu_item",
    "modifier_group",
    "category",
    "employee",
    "role",
    "tax_rate",
)


def _remote_ids(gateway: RemoteEntityGateway, entity_type: str) -> list[str]:
    ids: list[str] = []
    offset = 0
    while True:
        page = gateway.list(entity_type, limit=PAGE_SIZE, offset=offset).get("elements", [])
        ids.extend(str(r["id"]) for r in page if r.get("id"))
        if len(page) < PAGE_SIZE:
            return ids
        offset += PAGE_SIZE


def delete_all_entities(
    gateway: RemoteEntityGateway,
    store: SetupStateStore,
    *,
    sink: Optional[EventSink] = None,
    entity_types: Sequence[str] = TEARDOWN_ORDER,
) -> dict[str, dict[str, int]]:
    """
    Delete every remote entity of the given types and clear local setup state.

    Ids are collected for a whole type before any delete, so paging is not
    disturbed. A failed list or delete is counted and the teardown moves on.
    An entity that is already gone counts as deleted.
    """
    sink = sink or LoggingEventSink()
    report: dict[str, dict[str, int]] = {}
    for entity_type in entity_types:
        counters = PhaseCounters()
        try:
            ids = _remote_ids(gateway, entity_type)
        except GatewayError as exc:
            counters.record(False)
            sink.emit("teardown.list_failed", entity_type=entity_type, error=str(exc))
            report[entity_type] = counters.as_dict()
            continue
        for entity_id in ids:
            try:
                gateway.delete(entity_type, entity_id)
            except NotFoundError:
                pass
            except GatewayError as exc:
                counters.record(False)
                sink.emit("teardown.delete_failed", entity_type=entity_type, id=entity_id, error=str(exc))
                continue
            counters.record(True)
        report[entity_type] = counters.as_dict()
        sink.emit(
            "teardown.type_done",
            entity_type=entity_type,
            deleted=counters.success_count,
            failed=counters.error_count,
        )
    store.reset_all()
    return report


def teardown(
    db: Session,
    settings: Settings,
    *,
    gateway: Optional[RemoteEntityGateway] = None,
    sink: Optional[EventSink] = None,
) -> dict[str, dict[str, int]]:
    return delete_all_entities(gateway or get_gateway(settings, db), SetupStateStore(db), sink=sink)


# --- runs ---

def start_run(
    db: Session,
    *,
    start_date: date,
    days: int,
    seed: int,
    params: Optional[dict] = None,
) -> SimulationRun:
    run = SimulationRun(
        status="in_progress",
        start_date=start_date,
        days=days,
        seed=seed,
        started_at=_now(),
        params=params or {},
    )
    db.add(run)
    db.flush()
    return run


def finish_run(
    db: Session,
    run: SimulationRun,
    *,
    status: str,
    counters: Optional[dict] = None,
    setup_report: Optional[dict] = None,
    error: Optional[str] = None,
) -> None:
    run.status = status
    if counters is not None:
        run.counters = counters
    if setup_report is not None:
        run.setup_report = setup_report
    if error:
        run.error = error[:500]
    run.finished_at = _now()
    db.add(run)


def record_day(db: Session, run: SimulationRun, summary: DaySummary) -> SimulationDay:
    row = SimulationDay(run_id=run.id, day=summary.date, rollup=summary.rollup().to_dict())
    db.add(row)
    db.commit()
    return row


def run_simulation(
    db: Session,
    settings: Settings,
    *,
    start_date: date,
    days: int,
    seed: Optional[int] = None,
    gateway: Optional[RemoteEntityGateway] = None,
    tuning: SimulationTuning = DEFAULT_TUNING,
    sink: Optional[EventSink] = None,
    reset: bool = False,
) -> SimulationRun:
    if days < 1:
        raise ValueError("days must be >= 1")
    services = build_services(db, settings, gateway=gateway, tuning=tuning, sink=sink, seed=seed)
    if reset:
        services.store.reset_all()

    run = start_run(
        db,
        start_date=start_date,
        days=days,
        seed=services.seed,
        params={"tuning": asdict(tuning), "reset": reset},
    )
    db.commit()
    logger.info("simulation run %s started: start=%s days=%s seed=%s", run.id, start_date, days, services.seed)

    simulator = RestaurantSimulator(services)
    try:
        result = simulator.run(start_date, days, on_day=lambda summary: record_day(db, run, summary))
    except Exception as exc:
        db.rollback()
        finish_run(db, run, status="failed", error=f"{type(exc).__name__}: {exc}")
        db.commit()
        logger.error("simulation run %s failed: %s", run.id, exc)
        raise

    finish_run(
        db,
        run,
        status="completed",
        counters=result.period.as_dict(),
        setup_report=result.setup.as_dict() if result.setup else None,
    )
    db.commit()
    return run


def list_runs(db: Session, limit: int = 10) -> list[SimulationRun]:
    return db.execute(
        select(SimulationRun).order_by(SimulationRun.started_at.desc()).limit(limit)
    ).scalars().all()


def get_run(db: Session, run_id: str) -> Optional[SimulationRun]:
    return db.get(SimulationRun, run_id)


def day_rollups(db: Session, run: SimulationRun) -> list[DayRollup]:
    rows = db.execute(
        select(SimulationDay).where(SimulationDay.run_id == run.id).order_by(SimulationDay.day.asc())
    ).scalars().all()
    return [DayRollup.from_dict(row.rollup) for row in rows]


def period_summary_for_run(db: Session, run_id: str) -> Optional[dict[str, Any]]:
    run = get_run(db, run_id)
    if run is None:
        return None
    rollups = day_rollups(db, run)
    aggregator = PeriodAnalyticsAggregator()
    end_date = run.start_date + timedelta(days=run.days - 1)
    return {
        "run_id": run.id,
        "status": run.status,
        "summary": aggregator.summarize(rollups, run.start_date, run.days).as_dict(),
        "sales_report": aggregator.sales_report(rollups, run.start_date, end_date),
        "item_sales_report": aggregator.item_sales_report(rollups, run.start_date, end_date),
    }


def run_payload(run: SimulationRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "status": run.status,
        "start_date": run.start_date.isoformat(),
        "days": run.days,
        "seed": run.seed,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "finished_at": run.finished_at.isoformat() if run.finished_at else None,
        "counters": run.counters,
        "setup_report": run.setup_report,
        "error": run.error,
    }
