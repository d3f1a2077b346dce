# restaurant_sim/app/api/deps.py
from __future__ import annotations

from typing import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from restaurant_sim.app.config import Settings, load_settings
from restaurant_sim.app.db import get_db
from restaurant_sim.app.integrations import close_gateway, get_gateway
from restaurant_sim.app.integrations.base import RemoteEntityGateway


def get_settings() -> Settings:
    """
    Settings are read per request so .env edits apply without a restart.
    Validation is deferred to get_remote_gateway, which is the only caller
    that needs credentials.
    """
    return load_settings(validate=False)


def get_remote_gateway(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Iterator[RemoteEntityGateway]:
    gateway = get_gateway(settings, db)
    try:
        yield gateway
    finally:
        close_gateway(gateway)
