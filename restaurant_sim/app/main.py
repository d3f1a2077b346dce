import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from restaurant_sim.app.api.routes.simulation import router as simulation_router
from restaurant_sim.app.db import init_db
from restaurant_sim.app.errors import ConfigurationError


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    logger.info("database tables ensured")
    yield


app = FastAPI(title="Restaurant Workload Simulator API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(ConfigurationError)
def _configuration_error(request: Request, exc: ConfigurationError):
    logger.error("configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(simulation_router)
