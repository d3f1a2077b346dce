from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from restaurant_sim.app.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityState(Base):
    """
    Ledger of remote reference entities known to exist.

    seq preserves creation order so get_entities() replays entities the way
    they were discovered or created.
    """
    __tablename__ = "entity_states"
    __table_args__ = (
        UniqueConstraint("entity_type", "remote_id", name="uq_entity_states_type_remote_id"),
        Index("ix_entity_states_type_name", "entity_type", "name"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    remote_id: Mapped[str] = mapped_column(String(80), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class SetupStep(Base):
    __tablename__ = "setup_steps"

    name: Mapped[str] = mapped_column(String(80), primary_key=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)


class GatewayCacheEntry(Base):
    __tablename__ = "gateway_cache_entries"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
