"""Connection manager for Hanabi switchers.

The HanabiController owns the WebSocket to one switcher and drives it
through an explicit state machine:

    IDLE --connect()--> CONNECTING
    CONNECTING --opened--> OPEN (sends the "get state" bootstrap command)
    CONNECTING --failed--> DISCONNECTED
    OPEN --closed--> DISCONNECTED
    DISCONNECTED --timer scheduled--> RECONNECT_PENDING
    RECONNECT_PENDING --timer fired--> CONNECTING
    any --teardown--> CLOSING --> IDLE

Every transport gets a new generation number. Callbacks carrying an older
generation are ignored, so a superseded transport can never touch the
state. Frames are decoded into the SwitcherState; a coarse status is
published to status listeners on every transition.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .commands import bootstrap_command, encode_command
from .config import HanabiConfig
from .connection import ABNORMAL_CLOSURE, NORMAL_CLOSURE, HanabiConnection
from .exceptions import HanabiConfigurationError, HanabiConnectionError, HanabiStateError
from .models import DEFAULT_MODEL
from .protocol import OpaqueEvent, StateUpdate, decode_frame
from .state import SwitcherState

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .models import ModelId, SwitcherModel

    StatusListener = Callable[["HanabiStatus"], None]
    EventListener = Callable[[OpaqueEvent], None]

_LOGGER = logging.getLogger(__name__)

BAD_URL_REASON = "WS URL is not defined or invalid"


class ConnectionState(StrEnum):
    """State of the connection state machine."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    DISCONNECTED = "disconnected"
    RECONNECT_PENDING = "reconnect_pending"


# Allowed transitions of the state machine
TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.IDLE: frozenset({ConnectionState.CONNECTING, ConnectionState.CLOSING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.OPEN, ConnectionState.DISCONNECTED, ConnectionState.CLOSING}
    ),
    ConnectionState.OPEN: frozenset({ConnectionState.DISCONNECTED, ConnectionState.CLOSING}),
    ConnectionState.DISCONNECTED: frozenset(
        {ConnectionState.RECONNECT_PENDING, ConnectionState.CLOSING}
    ),
    ConnectionState.RECONNECT_PENDING: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.CLOSING}
    ),
    ConnectionState.CLOSING: frozenset({ConnectionState.IDLE}),
}


class StatusLevel(StrEnum):
    """Coarse status reported to the control surface."""

    CONNECTING = "connecting"
    OK = "ok"
    DISCONNECTED = "disconnected"
    BAD_CONFIGURATION = "bad_configuration"


@dataclass(frozen=True)
class HanabiStatus:
    """Status published on every state transition. Informational only."""

    level: StatusLevel
    reason: str | None = None
    close_code: int | None = None

    def __str__(self) -> str:
        return f"{self.level}: {self.reason}" if self.reason else str(self.level)


@dataclass
class ConnectionMetrics:
    """Tracks connection metrics for observability."""

    connect_attempts: int = 0
    successful_connects: int = 0
    reconnect_attempts: int = 0
    disconnects: int = 0
    frames_received: int = 0
    commands_sent: int = 0
    commands_dropped: int = 0

    def to_dict(self) -> dict[str, int]:
        """Return metrics as a dictionary."""
        return asdict(self)


class HanabiController:
    """Keeps a switcher connection alive and mirrors its variables.

    All lifecycle methods except stop() are synchronous and must be called
    from a running event loop; their results surface later through the
    status listeners and the SwitcherState.

    Example:
        controller = HanabiController(HanabiConfig("10.0.0.20", ModelId.HVS390))
        controller.on_variable_changed(lambda key, old, new: print(key, new))
        controller.connect()
        await controller.wait_connected()
        await controller.send_action("key_on", {"me": 1, "key": 2})
    """

    def __init__(
        self,
        config: HanabiConfig | None = None,
        state: SwitcherState | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Switcher configuration, can be given later with configure()
            state: State store to update (default: a new SwitcherState)
        """
        self._config = config
        self._state = state if state is not None else SwitcherState()

        self._connection_state = ConnectionState.IDLE
        self._status: HanabiStatus | None = None

        # Transport bookkeeping
        self._generation = 0
        self._connection: HanabiConnection | None = None
        self._attempt_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._pending_tasks: set[asyncio.Task[Any]] = set()
        self._has_opened = False
        self._open_event = asyncio.Event()

        # Callbacks
        self._status_listeners: list[StatusListener] = []
        self._event_listeners: list[EventListener] = []

        self._metrics = ConnectionMetrics()

        if config is not None:
            self._state.initialize(config.model)

    def __repr__(self) -> str:
        host = self._config.host if self._config else None
        return (
            f"HanabiController(host={host!r}, state={self._connection_state}, "
            f"generation={self._generation})"
        )

    async def __aenter__(self) -> HanabiController:
        self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    @property
    def config(self) -> HanabiConfig | None:
        """Return the current configuration."""
        return self._config

    @property
    def model(self) -> SwitcherModel | None:
        """Return the configured switcher model."""
        return self._config.switcher_model if self._config else None

    @property
    def state(self) -> SwitcherState:
        """Return the state store."""
        return self._state

    @property
    def connection_state(self) -> ConnectionState:
        """Return the state of the connection state machine."""
        return self._connection_state

    @property
    def status(self) -> HanabiStatus | None:
        """Return the last published status."""
        return self._status

    @property
    def generation(self) -> int:
        """Return the generation of the current transport."""
        return self._generation

    @property
    def metrics(self) -> ConnectionMetrics:
        """Return connection metrics."""
        return self._metrics

    @property
    def connected(self) -> bool:
        """Return True if the connection is open."""
        return self._connection_state is ConnectionState.OPEN

    @property
    def reconnect_pending(self) -> bool:
        """Return True if a reconnect timer is scheduled."""
        return self._reconnect_handle is not None

    # --------------------------------------------------------------------------
    # Caller API
    # --------------------------------------------------------------------------

    def get_variable(self, key: str) -> str | None:
        """Return the last known value of a variable, or None."""
        return self._state.get(key)

    def on_variable_changed(
        self, callback: Callable[[str, str | None, str], None]
    ) -> Callable[[], None]:
        """Register a callback called with (key, old value, new value).

        Returns:
            A function removing the callback again
        """
        return self._state.add_listener(callback)

    def on_status_changed(self, callback: StatusListener) -> Callable[[], None]:
        """Register a callback called with every new HanabiStatus."""
        return _add_listener(self._status_listeners, callback)

    def on_event(self, callback: EventListener) -> Callable[[], None]:
        """Register a callback for tokens that are not variables."""
        return _add_listener(self._event_listeners, callback)

    def configure(
        self,
        host: str,
        model: SwitcherModel | ModelId | str | None = None,
        **options: Any,
    ) -> None:
        """Point the controller at a switcher and (re)connect.

        If the host, model or port changed, the current connection is torn
        down and a single new connection attempt is started.

        Args:
            host: IP address or hostname of the switcher
            model: Switcher model (default: keep the current one)
            **options: Other HanabiConfig fields (reconnect_delay, port, ...)
        """
        if model is None:
            model = self._config.model if self._config else DEFAULT_MODEL
        try:
            if self._config is not None:
                config = self._config.replace(host=host, model=model, **options)
            else:
                config = HanabiConfig(host, model, **options)
        except HanabiConfigurationError as err:
            _LOGGER.error("Invalid configuration: %s", err)
            self._teardown()
            self._set_status(StatusLevel.BAD_CONFIGURATION, str(err))
            return
        self.apply_config(config)

    def apply_config(self, config: HanabiConfig) -> None:
        """Use a new configuration, reconnecting if the endpoint changed."""
        old_config = self._config
        self._config = config
        _LOGGER.info("Configured for %s (%s)", config.host, config.switcher_model)

        if old_config is None or old_config.model != config.model:
            self._state.initialize(config.model)

        if not config.endpoint_differs(old_config) and (
            self._connection_state is not ConnectionState.IDLE
        ):
            # Only timing options changed, keep the current connection
            return

        _LOGGER.debug("Host or model changed, reinitializing connection")
        self._teardown()
        self._has_opened = False
        self.connect()

    def connect(self) -> None:
        """Start connecting if the controller is idle."""
        if self._connection_state is not ConnectionState.IDLE:
            _LOGGER.debug("Connect ignored in state %s", self._connection_state)
            return
        self._start_attempt()

    async def stop(self) -> None:
        """Close the connection and cancel any pending reconnect."""
        was_active = self._connection_state is not ConnectionState.IDLE
        self._teardown()
        if was_active:
            self._set_status(StatusLevel.DISCONNECTED, "Connection stopped", NORMAL_CLOSURE)
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until every superseded transport is closed."""
        while self._pending_tasks:
            await asyncio.wait(set(self._pending_tasks))

    async def wait_connected(self, timeout: float | None = None) -> None:
        """Wait until the connection is open.

        Raises:
            TimeoutError: If the connection does not open in time
        """
        async with asyncio.timeout(timeout):
            await self._open_event.wait()

    async def send_action(
        self, action_id: str, params: Mapping[str, Any] | None = None
    ) -> bool:
        """Encode an action and send it to the switcher.

        Nothing is sent if the action cannot be encoded for the configured
        model or the connection is not open.

        Returns:
            True if the command was written to the WebSocket
        """
        model = self.model
        command = encode_command(model, action_id, params) if model else None
        if command is None:
            _LOGGER.warning(
                "Cannot encode action %s with %s for %s", action_id, params, model
            )
            self._metrics.commands_dropped += 1
            return False
        return await self.send_command(command)

    async def send_command(self, command: str) -> bool:
        """Send a raw command string.

        Returns:
            True if the command was written to the WebSocket
        """
        connection = self._connection
        if self._connection_state is not ConnectionState.OPEN or connection is None:
            _LOGGER.warning("Not connected, dropping command %s", command)
            self._metrics.commands_dropped += 1
            return False

        try:
            await connection.send(command)
        except HanabiConnectionError as err:
            _LOGGER.warning("Failed to send %s: %s", command, err)
            self._metrics.commands_dropped += 1
            return False

        self._metrics.commands_sent += 1
        return True

    # --------------------------------------------------------------------------
    # State machine
    # --------------------------------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._connection_state
        if new_state not in TRANSITIONS[old_state]:
            raise HanabiStateError(f"Invalid transition {old_state} -> {new_state}")
        _LOGGER.debug("State %s -> %s", old_state, new_state)
        self._connection_state = new_state
        if new_state is ConnectionState.OPEN:
            self._open_event.set()
        else:
            self._open_event.clear()

    def _set_status(
        self, level: StatusLevel, reason: str | None = None, close_code: int | None = None
    ) -> None:
        status = HanabiStatus(level, reason, close_code)
        self._status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception:  # noqa: BLE001 - status listeners must not break the state machine
                _LOGGER.exception("Error in status listener")

    def _start_attempt(self) -> None:
        """Move to CONNECTING and open a new transport, or report a bad configuration."""
        config = self._config
        url = config.url if config else None
        if config is None or not config.is_valid:
            _LOGGER.error("%s: %s", BAD_URL_REASON, url)
            self._teardown()
            self._set_status(StatusLevel.BAD_CONFIGURATION, BAD_URL_REASON)
            return

        self._generation += 1
        self._set_state(ConnectionState.CONNECTING)
        self._set_status(StatusLevel.CONNECTING)
        self._metrics.connect_attempts += 1
        _LOGGER.info("Connecting: %s", url)

        self._attempt_task = asyncio.create_task(self._open_transport(self._generation, config))

    async def _open_transport(self, generation: int, config: HanabiConfig) -> None:
        # Never overlap with a transport that is still closing
        if self._pending_tasks:
            await asyncio.wait(set(self._pending_tasks))
        if generation != self._generation:
            return

        connection = HanabiConnection(
            config.url,
            origin=config.origin,
            generation=generation,
            connect_timeout=config.connect_timeout,
            ping_interval=config.ping_interval,
        )
        connection.set_message_callback(self._on_frame)
        connection.set_disconnect_callback(self._on_transport_closed)
        self._connection = connection

        try:
            await connection.connect()
        except HanabiConfigurationError as err:
            if generation == self._generation:
                _LOGGER.error("%s", err)
                self._attempt_task = None
                self._teardown()
                self._set_status(StatusLevel.BAD_CONFIGURATION, str(err))
            return
        except HanabiConnectionError as err:
            self._on_transport_closed(generation, err.close_code or ABNORMAL_CLOSURE, str(err))
            return
        except asyncio.CancelledError:
            await connection.disconnect()
            raise
        except Exception as err:  # noqa: BLE001 - an attempt must always end in a state change
            _LOGGER.exception("Unexpected error connecting to %s", config.url)
            self._on_transport_closed(generation, ABNORMAL_CLOSURE, str(err))
            return

        if generation != self._generation:
            await connection.disconnect()
            return

        self._on_transport_open(generation)
        await self.send_command(bootstrap_command(config.switcher_model))

    def _on_transport_open(self, generation: int) -> None:
        self._set_state(ConnectionState.OPEN)
        self._has_opened = True
        self._metrics.successful_connects += 1
        _LOGGER.debug("Connection opened (generation %d)", generation)
        self._set_status(StatusLevel.OK)

    def _on_frame(self, generation: int, frame: str | bytes) -> None:
        if generation != self._generation or self._connection_state is not ConnectionState.OPEN:
            _LOGGER.debug("Ignoring frame from stale transport %d", generation)
            return

        self._metrics.frames_received += 1
        model = self.model
        if model is None:
            return

        for item in decode_frame(frame, model):
            if isinstance(item, StateUpdate):
                self._state.set(item.key, item.value)
            else:
                self._on_opaque_event(item)

    def _on_opaque_event(self, event: OpaqueEvent) -> None:
        _LOGGER.debug("Data received: %s", event.raw)
        for listener in list(self._event_listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - event listeners must not break decoding
                _LOGGER.exception("Error in event listener")

    def _on_transport_closed(self, generation: int, code: int, reason: str = "") -> None:
        if generation != self._generation:
            _LOGGER.debug("Ignoring close of stale transport %d", generation)
            return
        if self._connection_state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return

        self._connection = None
        self._metrics.disconnects += 1

        message = f"Connection closed with code {code}"
        if reason:
            message += f" ({reason})"
        _LOGGER.warning("%s", message)

        self._set_state(ConnectionState.DISCONNECTED)
        self._set_status(StatusLevel.DISCONNECTED, message, code)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        config = self._config
        if config is None:
            return
        delay = config.reconnect_delay if self._has_opened else config.first_run_delay

        if self._reconnect_handle:
            self._reconnect_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._on_reconnect_timer, self._generation)
        self._set_state(ConnectionState.RECONNECT_PENDING)
        _LOGGER.info("Reconnecting in %.1fs", delay)

    def _on_reconnect_timer(self, generation: int) -> None:
        self._reconnect_handle = None
        if (
            generation != self._generation
            or self._connection_state is not ConnectionState.RECONNECT_PENDING
        ):
            return
        self._metrics.reconnect_attempts += 1
        self._start_attempt()

    def _teardown(self) -> None:
        """Cancel the reconnect timer, close the transport and go back to IDLE."""
        if self._reconnect_handle:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        # Any callback from the current transport is stale from now on
        self._generation += 1

        if self._connection_state is ConnectionState.IDLE:
            return
        self._set_state(ConnectionState.CLOSING)

        if self._attempt_task and not self._attempt_task.done():
            self._attempt_task.cancel()
            self._track(self._attempt_task)
        self._attempt_task = None

        if self._connection:
            self._track(asyncio.create_task(self._connection.disconnect()))
            self._connection = None

        self._set_state(ConnectionState.IDLE)

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)


def _add_listener(listeners: list[Any], callback: Any) -> Callable[[], None]:
    listeners.append(callback)

    def remove() -> None:
        if callback in listeners:
            listeners.remove(callback)

    return remove
