"""Connection configuration for a Hanabi switcher."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Any

from .exceptions import HanabiConfigurationError
from .models import DEFAULT_MODEL, ModelId, SwitcherModel, get_model

# Endpoint URL grammar: scheme, lower-case host, optional port and path
WS_URL_RE = re.compile(r"^wss?:\/\/([\da-z\.-]+)(:\d{1,5})?(?:\/(.*))?$")

DEFAULT_RECONNECT_DELAY = 5.0  # seconds between reconnect attempts
DEFAULT_FIRST_RUN_DELAY = 15.0  # seconds before retrying a connection that never opened
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds to wait for the WebSocket handshake
DEFAULT_PING_INTERVAL = 20.0  # seconds between WebSocket pings

MIN_PORT = 1
MAX_PORT = 65535


def is_valid_url(url: str | None) -> bool:
    """Return True if ``url`` is a usable switcher WebSocket URL."""
    return bool(url) and WS_URL_RE.match(url) is not None


@dataclass(frozen=True)
class HanabiConfig:
    """Where and how to reach a switcher.

    The configuration is immutable. The host is not validated here: an
    invalid host surfaces as a BAD_CONFIGURATION status when the
    controller tries to connect. An unknown model, a port outside
    1..65535 or a negative delay raise HanabiConfigurationError.
    """

    host: str
    model: ModelId = DEFAULT_MODEL
    port: int | None = None
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    first_run_delay: float = DEFAULT_FIRST_RUN_DELAY
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    ping_interval: float | None = DEFAULT_PING_INTERVAL

    def __post_init__(self) -> None:
        # Accept plain strings for the model, reject unknown ones early
        object.__setattr__(self, "model", get_model(self.model).model_id)
        object.__setattr__(self, "host", (self.host or "").strip())
        if self.port is not None and not MIN_PORT <= self.port <= MAX_PORT:
            raise HanabiConfigurationError(
                f"port {self.port} out of range {MIN_PORT}..{MAX_PORT}"
            )
        if self.reconnect_delay < 0 or self.first_run_delay < 0:
            raise HanabiConfigurationError("reconnect delays must not be negative")

    @property
    def switcher_model(self) -> SwitcherModel:
        """Return the registry entry of the configured model."""
        return get_model(self.model)

    @property
    def effective_port(self) -> int:
        """Return the configured port, or the model's default port."""
        return self.port if self.port is not None else self.switcher_model.default_port

    @property
    def url(self) -> str:
        """Return the WebSocket URL of the switcher."""
        return f"ws://{self.host}:{self.effective_port}"

    @property
    def origin(self) -> str:
        """Return the value sent in the Origin header."""
        return self.host

    @property
    def is_valid(self) -> bool:
        """Return True if the endpoint URL passes validation."""
        return is_valid_url(self.url)

    def endpoint_differs(self, other: HanabiConfig | None) -> bool:
        """Return True if ``other`` points at a different switcher or model."""
        if other is None:
            return True
        return (self.host, self.model, self.effective_port) != (
            other.host,
            other.model,
            other.effective_port,
        )

    def replace(self, **changes: Any) -> HanabiConfig:
        """Return a copy of the configuration with some fields changed."""
        return dataclasses.replace(self, **changes)
