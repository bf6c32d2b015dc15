"""Exceptions raised by pyhanabi."""

from __future__ import annotations


class HanabiError(Exception):
    """Base class for all pyhanabi errors."""


class HanabiConfigurationError(HanabiError):
    """The host, URL or model is invalid.

    This is not a transient failure: the controller reports it as a
    BAD_CONFIGURATION status and does not retry until reconfigured.
    """


class HanabiConnectionError(HanabiError):
    """The WebSocket transport failed to open or was lost."""

    def __init__(self, message: str, close_code: int | None = None) -> None:
        super().__init__(message)
        self.close_code = close_code


class HanabiActionError(HanabiError):
    """An action is unknown for a model or its parameters are invalid."""

    def __init__(self, action_id: str, reason: str) -> None:
        super().__init__(f"cannot encode action {action_id!r}: {reason}")
        self.action_id = action_id
        self.reason = reason


class HanabiStateError(HanabiError):
    """A connection state transition outside the allowed edges was requested."""
