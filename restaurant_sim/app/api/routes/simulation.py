from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from restaurant_sim.app.api.deps import get_remote_gateway, get_settings
from restaurant_sim.app.config import Settings
from restaurant_sim.app.db import get_db
from restaurant_sim.app.errors import (
    DetectionUnknownError,
    FatalReconciliationError,
    GatewayError,
)
from restaurant_sim.app.integrations.base import RemoteEntityGateway
from restaurant_sim.app.services import simulation_service
from restaurant_sim.app.sim.reconciler import STEP_ORDER
from restaurant_sim.app.sim.schemas import SetupStatusOut, SimulationRunOut, SimulationRunRequest

router = APIRouter(prefix="/api/sim", tags=["simulation"])


@router.get("/setup", response_model=SetupStatusOut)
def get_setup_status(db: Session = Depends(get_db)):
    return simulation_service.setup_status(db)


@router.post("/setup")
def run_setup(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RemoteEntityGateway = Depends(get_remote_gateway),
):
    try:
        return simulation_service.run_setup(db, settings, gateway=gateway)
    except FatalReconciliationError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except DetectionUnknownError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


@router.post("/setup/steps/{name}/reset")
def reset_setup_step(name: str, db: Session = Depends(get_db)):
    if name not in STEP_ORDER and name != "last_error":
        raise HTTPException(status_code=404, detail=f"unknown setup step: {name}")
    return {"name": name, "reset": simulation_service.reset_step(db, name)}


@router.post("/teardown")
def teardown_remote(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RemoteEntityGateway = Depends(get_remote_gateway),
):
    return {"deleted": simulation_service.teardown(db, settings, gateway=gateway)}


@router.post("/runs", response_model=SimulationRunOut)
def create_run(
    req: SimulationRunRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RemoteEntityGateway = Depends(get_remote_gateway),
):
    try:
        run = simulation_service.run_simulation(
            db,
            settings,
            start_date=req.start_date,
            days=req.days,
            seed=req.seed,
            gateway=gateway,
            reset=req.reset,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except (FatalReconciliationError, GatewayError) as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return simulation_service.run_payload(run)


@router.get("/runs", response_model=list[SimulationRunOut])
def list_runs(limit: int = Query(default=10, ge=1, le=100), db: Session = Depends(get_db)):
    return [simulation_service.run_payload(run) for run in simulation_service.list_runs(db, limit=limit)]


@router.get("/runs/{run_id}/summary")
def get_run_summary(run_id: str, db: Session = Depends(get_db)):
    summary = simulation_service.period_summary_for_run(db, run_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="run not found")
    return summary
