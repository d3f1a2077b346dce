from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Index,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant_sim.app.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uuid_str() -> str:
    return str(uuid.uuid4())


class SimulationRun(Base):
    """
    One row per simulator invocation.

    params keeps what is needed to reproduce the run (seed, start date,
    day count, tuning overrides); counters holds the final totals.
    """
    __tablename__ = "simulation_runs"
    __table_args__ = (
        Index("ix_simrun_status_started", "status", "started_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'in_progress'"),
        default="in_progress",  # in_progress | completed | failed
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    seed: Mapped[int] = mapped_column(Integer, nullable=False, default=1337)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    params: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    setup_report: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    counters: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    day_rows = relationship(
        "SimulationDay",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="SimulationDay.day",
    )


class SimulationDay(Base):
    __tablename__ = "simulation_days"
    __table_args__ = (
        UniqueConstraint("run_id", "day", name="uq_simulation_days_run_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("simulation_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day: Mapped[date] = mapped_column(Date, nullable=False)

    # DayRollup.to_dict()
    rollup: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    run = relationship("SimulationRun", back_populates="day_rows")
