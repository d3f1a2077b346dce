from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from restaurant_sim.app.config import Settings
from restaurant_sim.app.integrations.base import (
    ENTITY_TYPES,
    REFERENCE_ENTITY_TYPES,
    EntityType,
    Record,
    RemoteEntityGateway,
)
from restaurant_sim.app.integrations.cache import CachingGateway, MemoryKeyValueCache, SqlKeyValueCache
from restaurant_sim.app.integrations.clover import CloverClient, CloverGateway
from restaurant_sim.app.integrations.memory_stub import InMemoryGateway


STUB_GATEWAY: InMemoryGateway | None = None


def get_gateway(settings: Settings, db: Optional[Session] = None) -> RemoteEntityGateway:
    """Build the gateway selected by settings, wrapped in a cache when enabled."""
    global STUB_GATEWAY
    if settings.use_stub_gateway:
        if STUB_GATEWAY is None:
            STUB_GATEWAY = InMemoryGateway()
        gateway: RemoteEntityGateway = STUB_GATEWAY
    else:
        settings.validate()
        gateway = CloverGateway(
            CloverClient(
                base_url=settings.environment_url,
                merchant_id=settings.merchant_id or "",
                api_token=settings.api_token or "",
            )
        )

    if settings.cache_enabled and not settings.force_refresh:
        if db is not None:
            cache = SqlKeyValueCache(db, ttl_seconds=settings.cache_ttl_seconds)
        else:
            cache = MemoryKeyValueCache()
        gateway = CachingGateway(gateway, cache)
    return gateway


def close_gateway(gateway: RemoteEntityGateway) -> None:
    """Release the HTTP client behind a Clover gateway, cached or not."""
    inner = gateway.inner if isinstance(gateway, CachingGateway) else gateway
    if isinstance(inner, CloverGateway):
        inner.client.close()


__all__ = [
    "ENTITY_TYPES",
    "REFERENCE_ENTITY_TYPES",
    "EntityType",
    "Record",
    "RemoteEntityGateway",
    "CachingGateway",
    "CloverGateway",
    "InMemoryGateway",
    "close_gateway",
    "get_gateway",
]
