from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restaurant_sim.app.models import EntityState, SetupStep

logger = logging.getLogger(__name__)

LAST_ERROR_STEP = "last_error"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SetupStateStore:
    """
    Durable record of completed setup steps and known remote entities.

    Every write commits before returning, so a crash between two steps never
    loses the first one. All writes are safe to repeat with the same arguments.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- entities ---

    def record_entity(
        self,
        entity_type: str,
        remote_id: str,
        name: Optional[str] = None,
        snapshot: Optional[dict] = None,
    ) -> bool:
        """Upsert an entity. Returns True when a new row was inserted."""
        remote_id = str(remote_id)
        existing = self.db.execute(
            select(EntityState).where(
                EntityState.entity_type == entity_type,
                EntityState.remote_id == remote_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            existing.name = name
            existing.snapshot = dict(snapshot or {})
            self.db.commit()
            return False

        try:
            with self.db.begin_nested():
                self.db.add(
                    EntityState(
                        entity_type=entity_type,
                        remote_id=remote_id,
                        name=name,
                        snapshot=dict(snapshot or {}),
                        created_at=_now(),
                    )
                )
                self.db.flush()
        except IntegrityError:
            return False
        self.db.commit()
        return True

    def entity_exists(self, entity_type: str, identifier: str) -> bool:
        found = self.db.execute(
            select(EntityState.seq)
            .where(
                EntityState.entity_type == entity_type,
                or_(EntityState.remote_id == str(identifier), EntityState.name == identifier),
            )
            .limit(1)
        ).scalar_one_or_none()
        return found is not None

    def get_entities(self, entity_type: str) -> list[dict[str, Any]]:
        rows = self.db.execute(
            select(EntityState)
            .where(EntityState.entity_type == entity_type)
            .order_by(EntityState.seq.asc())
        ).scalars().all()
        return [
            {
                "id": row.remote_id,
                "name": row.name,
                "data": dict(row.snapshot or {}),
                "created_at": row.created_at,
            }
            for row in rows
        ]

    def creation_summary(self) -> dict[str, int]:
        rows = self.db.execute(
            select(EntityState.entity_type, func.count(EntityState.seq))
            .group_by(EntityState.entity_type)
            .order_by(EntityState.entity_type.asc())
        ).all()
        return {entity_type: int(count) for entity_type, count in rows}

    # --- steps ---

    def mark_step_completed(self, name: str, payload: Optional[dict] = None) -> None:
        step = self.db.get(SetupStep, name)
        if step is None:
            step = SetupStep(name=name)
            self.db.add(step)
        step.completed = True
        step.completed_at = _now()
        step.payload = dict(payload or {})
        self.db.commit()
        logger.info("setup step completed: %s", name)

    def record_last_error(self, step_name: str, message: str) -> None:
        step = self.db.get(SetupStep, LAST_ERROR_STEP)
        if step is None:
            step = SetupStep(name=LAST_ERROR_STEP)
            self.db.add(step)
        step.completed = False
        step.completed_at = _now()
        step.payload = {"step": step_name, "error": message}
        self.db.commit()

    def step_completed(self, name: str) -> bool:
        step = self.db.get(SetupStep, name)
        return bool(step and step.completed)

    def get_step_data(self, name: str) -> Optional[dict]:
        step = self.db.get(SetupStep, name)
        if step is None or step.payload is None:
            return None
        return dict(step.payload)

    def list_steps(self) -> list[dict[str, Any]]:
        rows = self.db.execute(select(SetupStep).order_by(SetupStep.name.asc())).scalars().all()
        return [
            {
                "name": row.name,
                "completed": bool(row.completed),
                "completed_at": row.completed_at.isoformat() if row.completed_at else None,
                "payload": row.payload,
            }
            for row in rows
        ]

    def reset_step(self, name: str) -> bool:
        result = self.db.execute(delete(SetupStep).where(SetupStep.name == name))
        self.db.commit()
        return bool(result.rowcount)

    def reset_all(self) -> None:
        self.db.execute(delete(SetupStep))
        self.db.execute(delete(EntityState))
        self.db.commit()
        logger.warning("setup state reset: all steps and entities cleared")
