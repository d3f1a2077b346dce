from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None:
        ...


def _level_for(event: str) -> int:
    if event.endswith(("failed", "error", "fatal")):
        return logging.ERROR if event.endswith("fatal") else logging.WARNING
    if event.endswith(("skipped", "malformed_entry", "unknown")):
        return logging.WARNING
    return logging.INFO


class LoggingEventSink:
    """Render simulator events as `event key=value` log lines."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("restaurant_sim.events")

    def emit(self, event: str, **fields: Any) -> None:
        rendered = " ".join(f"{k}={v}" for k, v in fields.items())
        self.logger.log(_level_for(event), "%s %s", event, rendered)


@dataclass
class RecordingEventSink:
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append((event, dict(fields)))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]
