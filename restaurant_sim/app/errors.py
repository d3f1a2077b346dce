from __future__ import annotations

from typing import Optional


class SimulatorError(Exception):
    """Base error for the restaurant workload simulator."""


class ConfigurationError(SimulatorError):
    """Raised when required settings are missing or invalid."""


class GatewayError(SimulatorError):
    """Raised when the remote POS system rejects or fails a call."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Optional[object] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotFoundError(GatewayError):
    """Raised when the remote entity does not exist."""


class GatewayValidationError(GatewayError):
    """Raised when the remote system rejects a payload."""


class AuthenticationError(GatewayError):
    """Raised when credentials are rejected."""


class TransientGatewayError(GatewayError):
    """Raised for failures that may succeed on a later run."""


class RateLimitError(TransientGatewayError):
    """Raised when the remote system throttles requests."""


class DetectionUnknownError(TransientGatewayError):
    """Raised in strict mode when existing remote entities could not be listed."""


class FatalReconciliationError(SimulatorError):
    """Raised when a reconciliation step cannot make any progress."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step


class InvalidTransitionError(ValueError):
    """Raised on a reservation status change that is not allowed."""
