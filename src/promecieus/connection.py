"""Connection manager: one live WebSocket at a time, reconnecting forever.

State machine per client instance:

    CONNECTING ──handshake ok──▶ OPEN ──close/error──▶ CLOSED
         │                                               ▲
         └──────────────handshake failed─────────────────┘

Every CLOSED schedules a single retry timer (backoff delay). When it fires,
a fresh client is created and the cycle starts again. Failures are never
raised to the owner; they only show up as on_closed/on_open transitions.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

import structlog

from promecieus.backoff import Backoff
from promecieus.protocol import CONNECT, OutboundCommand, ProtocolError, StatusEvent
from promecieus.socket_client import SocketClient

log = structlog.get_logger()


class ConnectionState(Enum):
    """Lifecycle of the current client instance."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


ClientFactory = Callable[[], SocketClient]


class ConnectionManager:
    """Owns the status connection and its retry schedule.

    Reconnect state (current delay, pending retry timer) lives on the
    instance, so several managers can coexist on one loop.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        backoff: Backoff | None = None,
        *,
        on_open: Callable[[], None] | None = None,
        on_message: Callable[[StatusEvent], None] | None = None,
        on_closed: Callable[[int | None], None] | None = None,
    ):
        self._client_factory = client_factory
        self._backoff = backoff or Backoff()
        self.on_open = on_open
        self.on_message = on_message
        self.on_closed = on_closed

        self._state = ConnectionState.CLOSED
        self._client: SocketClient | None = None
        self._task: asyncio.Task | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._current_delay_ms = self._backoff.base_ms
        self._stopping = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        """Whether a connection is OPEN."""
        return self._state is ConnectionState.OPEN

    @property
    def current_delay_ms(self) -> int:
        """Delay the next closure will wait before retrying."""
        return self._current_delay_ms

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    def open(self) -> None:
        """Start a connection attempt unless one is CONNECTING or OPEN.

        Must be called from within a running event loop.
        """
        if self._stopping:
            return
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return

        self._cancel_retry()
        self._state = ConnectionState.CONNECTING
        client = self._client_factory()
        self._client = client
        self._task = asyncio.create_task(self._run(client), name="status-connection")

    async def send(self, command: OutboundCommand) -> bool:
        """Send one command on the OPEN connection.

        Returns:
            True if the frame was written, False if it was dropped. Drops
            happen during a reconnect window; callers must tolerate them.
        """
        client = self._client
        if self._state is not ConnectionState.OPEN or client is None:
            log.warning("send_dropped", action=command.kind, reason="not_connected")
            return False
        try:
            await client.send_message(command)
        except ConnectionError as e:
            log.warning("send_dropped", action=command.kind, reason=str(e))
            return False
        except ProtocolError as e:
            log.error("send_rejected", action=command.kind, error=str(e))
            return False
        log.debug("command_sent", action=command.kind)
        return True

    async def stop(self) -> None:
        """Close the connection and stop reconnecting."""
        self._stopping = True
        self._cancel_retry()

        # Close first to unblock any pending recv()
        client = self._client
        if client is not None:
            await client.disconnect()

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._client = None
        self._state = ConnectionState.CLOSED

    async def _run(self, client: SocketClient) -> None:
        """Drive one client instance from CONNECTING to CLOSED."""
        try:
            await client.connect()
        except ConnectionError as e:
            log.info("connect_failed", url=client.url, error=str(e))
            self._handle_closed(client)
            return

        if self._stopping or client is not self._client:
            await client.disconnect()
            return

        self._state = ConnectionState.OPEN
        self._current_delay_ms = self._backoff.base_ms
        log.info("connection_opened", url=client.url)

        try:
            await client.send_message(OutboundCommand(kind=CONNECT))
        except ConnectionError as e:
            log.warning("send_dropped", action=CONNECT, reason=str(e))

        if self.on_open:
            try:
                self.on_open()
            except Exception as e:
                log.error("callback_failed", callback="on_open", error=f"{type(e).__name__}: {e}")

        try:
            await self._read_loop(client)
        except asyncio.CancelledError:
            raise
        except ConnectionError as e:
            log.info("connection_lost", url=client.url, error=str(e))
        except Exception as e:
            log.error("connection_error", url=client.url, error=f"{type(e).__name__}: {e}")

        # Never leave an instance half-open
        await client.disconnect()
        self._handle_closed(client)

    async def _read_loop(self, client: SocketClient) -> None:
        """Forward inbound events in delivery order until the connection drops."""
        while not self._stopping:
            try:
                event = await client.read_message()
            except ProtocolError as e:
                log.warning("frame_dropped", error=str(e))
                continue
            if self.on_message:
                self.on_message(event)

    def _handle_closed(self, client: SocketClient) -> None:
        """Move to CLOSED and schedule at most one retry."""
        if client is not self._client:
            return
        self._state = ConnectionState.CLOSED

        retry_in: int | None = None
        if not self._stopping and self._retry_handle is None:
            retry_in = self._current_delay_ms
            loop = asyncio.get_running_loop()
            self._retry_handle = loop.call_later(retry_in / 1000, self._on_retry_timer)
            self._current_delay_ms = self._backoff.next(self._current_delay_ms)
            log.info("retry_scheduled", delay_ms=retry_in)

        if self.on_closed:
            self.on_closed(retry_in)

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        self.open()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
