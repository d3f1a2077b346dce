from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SimulationRunRequest(BaseModel):
    start_date: date
    days: int = Field(default=1, ge=1, le=90)
    seed: Optional[int] = None
    reset: bool = False


class SetupStepOut(BaseModel):
    name: str
    completed: bool
    completed_at: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


class SetupStatusOut(BaseModel):
    steps: List[SetupStepOut]
    entities: Dict[str, int]


class SimulationRunOut(BaseModel):
    id: str
    status: str
    start_date: date
    days: int
    seed: int
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    counters: Optional[Dict[str, Any]] = None
    setup_report: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
