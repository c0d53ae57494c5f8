"""WebSocket client for the job status feed."""

from __future__ import annotations

import asyncio

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from promecieus.protocol import OutboundCommand, StatusEvent, decode_event, encode_command


class SocketClient:
    """One WebSocket connection to the status endpoint.

    Simple and stateless: connects or throws. A closed client is never
    reused; ConnectionManager creates a fresh instance for every attempt.
    """

    def __init__(self, url: str, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self._ws = None

    @property
    def connected(self) -> bool:
        """Whether the handshake completed and the socket is not closed."""
        if self._ws is None:
            return False
        return self._ws.close_code is None

    async def connect(self) -> None:
        """Open the connection and complete the handshake.

        Raises:
            ConnectionError: If the server refuses, times out or rejects the
                handshake
        """
        try:
            self._ws = await websockets.connect(self.url, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise ConnectionError(f"Connect to {self.url} failed: {e}") from e

    async def disconnect(self) -> None:
        """Close the connection and wait for the closing handshake."""
        if self._ws is not None:
            ws = self._ws
            self._ws = None
            try:
                await ws.close()
            except (OSError, WebSocketException):
                pass

    async def read_message(self) -> StatusEvent:
        """Read the next inbound event.

        Returns:
            Decoded status event

        Raises:
            ConnectionError: If the connection is lost
            ProtocolError: If the frame does not match the wire format
        """
        if self._ws is None:
            raise ConnectionError("Not connected")

        try:
            raw = await self._ws.recv()
        except ConnectionClosed as e:
            raise ConnectionError(f"Connection closed by server: {e}") from e

        return decode_event(raw)

    async def send_message(self, command: OutboundCommand) -> None:
        """Send one command as a JSON text frame.

        Raises:
            ConnectionError: If not connected or the write fails
        """
        if not self.connected:
            raise ConnectionError("Not connected")

        data = encode_command(command)
        try:
            await self._ws.send(data)
        except (OSError, WebSocketException) as e:
            raise ConnectionError(f"Send failed: {e}") from e
