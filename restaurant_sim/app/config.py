from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from restaurant_sim.app.errors import ConfigurationError

DEFAULT_ENVIRONMENT_URL = "https://sandbox.dev.clover.com/"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _normalize_url(url: str) -> str:
    url = url.strip()
    return url if url.endswith("/") else f"{url}/"


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings for one simulator process."""

    merchant_id: Optional[str] = None
    api_token: Optional[str] = None
    environment_url: str = DEFAULT_ENVIRONMENT_URL
    log_level: str = "INFO"
    force_refresh: bool = False
    use_stub_gateway: bool = False
    cache_enabled: bool = False
    cache_ttl_seconds: int = 300
    strict_detection: bool = False
    seed: int = 1337

    def validate(self) -> "Settings":
        if self.use_stub_gateway:
            return self
        missing = [
            name
            for name, value in (
                ("CLOVER_MERCHANT_ID", self.merchant_id),
                ("CLOVER_API_TOKEN", self.api_token),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing required settings: {', '.join(missing)}")
        return self


def load_settings(*, validate: bool = True) -> Settings:
    load_dotenv()
    settings = Settings(
        merchant_id=os.getenv("CLOVER_MERCHANT_ID") or None,
        api_token=os.getenv("CLOVER_API_TOKEN") or None,
        environment_url=_normalize_url(os.getenv("CLOVER_ENVIRONMENT") or DEFAULT_ENVIRONMENT_URL),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        force_refresh=_env_flag("FORCE_REFRESH"),
        use_stub_gateway=_env_flag("SIM_USE_STUB_GATEWAY"),
        cache_enabled=_env_flag("SIM_GATEWAY_CACHE"),
        cache_ttl_seconds=_env_int("SIM_CACHE_TTL_SECONDS", 300),
        strict_detection=_env_flag("SIM_STRICT_DETECTION"),
        seed=_env_int("SIM_SEED", 1337),
    )
    return settings.validate() if validate else settings
