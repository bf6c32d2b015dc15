"""Mock Hanabi switcher for integration testing.

This module provides a WebSocket server that answers the switcher
command set with comma-separated variable frames.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from pyhanabi import EVENT_RECALL_VAR, key_variable

_LOGGER = logging.getLogger(__name__)


class MockHanabiSwitcher:
    """Mock switcher for testing.

    - Accepts WebSocket connections
    - Answers "get_state" with every variable in one frame
    - Applies key and event commands and echoes the new value
    - Can push arbitrary frames and drop connections

    Example:
        async with MockHanabiSwitcher() as switcher:
            controller = HanabiController(HanabiConfig(switcher.host, port=switcher.port))
            ...
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        """Initialize mock switcher.

        Args:
            host: Host to bind to (default: localhost)
            port: Port to bind to (0 = auto-assign)
        """
        self._host = host
        self._port = port
        self._server: Server | None = None
        self._clients: list[ServerConnection] = []

        self.received: list[str] = []
        self.origins: list[str | None] = []
        self.connections = 0

        self._variables: dict[str, str] = {EVENT_RECALL_VAR: "0"}
        for me in (1, 2):
            for key in (1, 2, 3, 4):
                self._variables[key_variable(me, key)] = "off"

    @property
    def host(self) -> str:
        """Return the server host."""
        return self._host

    @property
    def port(self) -> int:
        """Return the actual bound port."""
        if self._server:
            sockets = list(self._server.sockets)
            if sockets:
                return sockets[0].getsockname()[1]
        return self._port

    @property
    def clients(self) -> list[ServerConnection]:
        """Return the connected clients."""
        return list(self._clients)

    async def start(self) -> None:
        """Start the mock switcher."""
        self._server = await serve(self._handle_client, self._host, self._port)
        _LOGGER.info("Mock switcher started on %s:%d", self._host, self.port)

    async def stop(self) -> None:
        """Stop the mock switcher."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._clients.clear()

    async def __aenter__(self) -> MockHanabiSwitcher:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    def set_variable(self, key: str, value: str) -> None:
        """Change a variable without notifying clients."""
        self._variables[key] = value

    async def push(self, frame: str) -> None:
        """Send a frame to all connected clients."""
        for ws in self._clients[:]:
            with contextlib.suppress(ConnectionClosed):
                await ws.send(frame)

    def abort_clients(self) -> None:
        """Drop every client connection without a closing handshake."""
        for ws in self._clients[:]:
            ws.transport.abort()

    async def _handle_client(self, ws: ServerConnection) -> None:
        self._clients.append(ws)
        self.connections += 1
        self.origins.append(ws.request.headers.get("Origin") if ws.request else None)
        _LOGGER.info("Client connected")

        try:
            async for message in ws:
                command = message if isinstance(message, str) else message.decode()
                self.received.append(command)
                response = self._process(command)
                if response:
                    await ws.send(response)
        except ConnectionClosed:
            pass
        finally:
            if ws in self._clients:
                self._clients.remove(ws)
            _LOGGER.info("Client disconnected")

    def _process(self, command: str) -> str | None:
        """Apply a command and return the frame to send back."""
        if command == "get_state":
            return ", ".join(f"{key}:{value}" for key, value in self._variables.items())

        key, sep, value = command.partition(":")
        if not sep or key not in self._variables:
            return f"Unknown command {command}"

        if value == "toggle":
            value = "off" if self._variables[key] == "on" else "on"
        self._variables[key] = value
        return f"{key}:{value}"
