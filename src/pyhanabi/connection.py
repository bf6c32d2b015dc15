"""WebSocket transport to a Hanabi switcher.

A HanabiConnection wraps a single WebSocket. It is never reused: every
connection attempt creates a new instance tagged with a generation
number, and the generation is passed back with every callback so that
the owner can discard events from a superseded transport.

Features:
- websockets client with an Origin header set to the switcher host
- asyncio.timeout() around the opening handshake
- Background reader task delivering frames in arrival order
- Protocol-level pings handled by the websockets library
- Support for both sync and async callbacks
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import TYPE_CHECKING, Any

import websockets
from websockets.exceptions import ConnectionClosed, InvalidURI, WebSocketException

from .exceptions import HanabiConfigurationError, HanabiConnectionError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from websockets.asyncio.client import ClientConnection

    # Callback types: (generation, payload)
    MessageCallback = Callable[[int, str | bytes], None | Awaitable[None]]
    DisconnectCallback = Callable[[int, int, str], None]

_LOGGER = logging.getLogger(__name__)

# Connection configuration
CONNECTION_TIMEOUT = 10.0  # seconds to wait for the opening handshake
CLOSE_TIMEOUT = 5.0  # seconds to wait for the closing handshake
NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class HanabiConnection:
    """Single WebSocket connection to a switcher.

    Example:
        async with HanabiConnection("ws://10.0.0.20:8621", origin="10.0.0.20") as conn:
            await conn.send("get_state")
    """

    def __init__(
        self,
        url: str,
        origin: str | None = None,
        generation: int = 0,
        connect_timeout: float = CONNECTION_TIMEOUT,
        ping_interval: float | None = None,
    ) -> None:
        """Initialize connection configuration.

        Args:
            url: WebSocket URL (e.g. "ws://10.0.0.20:8621")
            origin: Value of the Origin header (the switcher host)
            generation: Number identifying this transport to its owner
            connect_timeout: Seconds to wait for the handshake (default: 10)
            ping_interval: Seconds between WebSocket pings, None to disable
        """
        self._url = url
        self._origin = origin
        self._generation = generation
        self._connect_timeout = connect_timeout
        self._ping_interval = ping_interval

        self._ws: ClientConnection | None = None
        self._connected = False
        self._close_code: int | None = None

        # Callbacks (support both sync and async)
        self._message_callback: MessageCallback | None = None
        self._disconnect_callback: DisconnectCallback | None = None

        self._reader_task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return (
            f"HanabiConnection(url={self._url!r}, generation={self._generation}, "
            f"connected={self.connected})"
        )

    @property
    def url(self) -> str:
        """Return the WebSocket URL."""
        return self._url

    @property
    def generation(self) -> int:
        """Return the generation number of this transport."""
        return self._generation

    @property
    def connected(self) -> bool:
        """Return True if the WebSocket is open."""
        return self._connected and self._ws is not None

    @property
    def close_code(self) -> int | None:
        """Return the close code once the connection is closed."""
        return self._close_code

    def set_message_callback(self, callback: MessageCallback | None) -> None:
        """Set callback for incoming frames.

        The callback can be either sync or async. If async, it will be awaited
        before the next frame is delivered.
        """
        self._message_callback = callback

    def set_disconnect_callback(self, callback: DisconnectCallback | None) -> None:
        """Set callback for connection loss.

        Called with the generation, the close code and a human readable
        reason. It is not called when disconnect() is used.
        """
        self._disconnect_callback = callback

    async def connect(self) -> None:
        """Open the WebSocket and start reading frames.

        Raises:
            HanabiConfigurationError: If the URL is rejected by the client.
            HanabiConnectionError: If the connection fails or times out.
        """
        if self.connected:
            return

        try:
            async with asyncio.timeout(self._connect_timeout):
                self._ws = await websockets.connect(
                    self._url,
                    origin=self._origin,
                    ping_interval=self._ping_interval,
                    close_timeout=CLOSE_TIMEOUT,
                )
        except InvalidURI as err:
            raise HanabiConfigurationError(f"Invalid WebSocket URL {self._url}: {err}") from err
        except TimeoutError as err:
            raise HanabiConnectionError(
                f"Connection to {self._url} timed out", ABNORMAL_CLOSURE
            ) from err
        except (OSError, WebSocketException) as err:
            raise HanabiConnectionError(
                f"Failed to connect to {self._url}: {err}", ABNORMAL_CLOSURE
            ) from err

        self._connected = True
        self._close_code = None
        _LOGGER.debug("Connected to %s (generation %d)", self._url, self._generation)

        self._reader_task = asyncio.create_task(self._reader_loop())

    async def disconnect(self, code: int = NORMAL_CLOSURE) -> None:
        """Close the connection without reporting a disconnect."""
        self._connected = False

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
        self._reader_task = None

        if self._ws:
            ws = self._ws
            self._ws = None
            with contextlib.suppress(OSError, WebSocketException):
                await ws.close(code)
            self._close_code = code

        _LOGGER.debug("Disconnected from %s (generation %d)", self._url, self._generation)

    async def __aenter__(self) -> HanabiConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def send(self, command: str) -> None:
        """Write a command frame.

        Raises:
            HanabiConnectionError: If not connected or the write fails.
        """
        if not self.connected or self._ws is None:
            raise HanabiConnectionError("Not connected")

        try:
            await self._ws.send(command)
        except ConnectionClosed as err:
            raise HanabiConnectionError(f"Write failed: {err}", _close_code_of(err)) from err
        _LOGGER.debug("Sent: %s", command)

    async def _invoke_message_callback(self, frame: str | bytes) -> None:
        if not self._message_callback:
            return

        if inspect.iscoroutinefunction(self._message_callback):
            await self._message_callback(self._generation, frame)
        else:
            self._message_callback(self._generation, frame)

    async def _reader_loop(self) -> None:
        """Deliver frames until the switcher closes the connection."""
        ws = self._ws
        if ws is None:
            return

        _LOGGER.debug("Reader loop started (generation %d)", self._generation)
        code = ABNORMAL_CLOSURE
        reason = ""
        try:
            async for frame in ws:
                try:
                    await self._invoke_message_callback(frame)
                except Exception:  # noqa: BLE001 - keep reading after a faulty callback
                    _LOGGER.exception("Error processing frame from %s", self._url)
            code = ws.close_code or ABNORMAL_CLOSURE
            reason = ws.close_reason or ""
        except ConnectionClosed as err:
            code = _close_code_of(err)
            reason = err.rcvd.reason if err.rcvd else ""
        except asyncio.CancelledError:
            _LOGGER.debug("Reader loop cancelled (generation %d)", self._generation)
            raise
        except (OSError, WebSocketException) as err:
            _LOGGER.warning("Connection error in reader loop: %s", err)
            reason = str(err)

        self._handle_connection_lost(code, reason)

    def _handle_connection_lost(self, code: int, reason: str) -> None:
        if not self._connected:
            return
        self._connected = False
        self._close_code = code
        self._ws = None
        _LOGGER.debug("Connection to %s closed with code %d", self._url, code)

        if self._disconnect_callback:
            self._disconnect_callback(self._generation, code, reason)


def _close_code_of(err: ConnectionClosed) -> int:
    """Return the close code received from the peer, 1006 if none."""
    if err.rcvd is not None:
        return err.rcvd.code
    return ABNORMAL_CLOSURE
