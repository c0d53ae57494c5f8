"""Session controller: glue between the connection and the reducer."""

from __future__ import annotations

from typing import Callable

import structlog

from promecieus.backoff import Backoff
from promecieus.config import Config
from promecieus.connection import ClientFactory, ConnectionManager
from promecieus.protocol import OutboundCommand, StatusEvent
from promecieus.session import (
    SessionState,
    derive_delete,
    derive_submit,
    reduce,
    with_input,
)
from promecieus.socket_client import SocketClient

log = structlog.get_logger()


class SessionController:
    """Holds the session state and turns user intents into commands.

    Opens the connection on construction, so it must be created inside a
    running event loop.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        client_factory: ClientFactory | None = None,
        on_change: Callable[[SessionState], None] | None = None,
        on_connection: Callable[[bool, int | None], None] | None = None,
        on_event: Callable[[StatusEvent], None] | None = None,
    ):
        self.config = config or Config()
        self.on_change = on_change
        self.on_connection = on_connection
        self.on_event = on_event
        self._state = SessionState()

        if client_factory is None:
            server = self.config.server
            url = server.ws_url

            def default_factory() -> SocketClient:
                return SocketClient(url, open_timeout=server.open_timeout)

            client_factory = default_factory

        reconnect = self.config.reconnect
        self.connection = ConnectionManager(
            client_factory,
            Backoff(
                base_ms=reconnect.initial_delay_ms,
                max_ms=reconnect.max_delay_ms,
                multiplier=reconnect.multiplier,
            ),
            on_open=self._handle_open,
            on_message=self.handle_event,
            on_closed=self._handle_closed,
        )
        self.connection.open()

    @property
    def state(self) -> SessionState:
        """Current state snapshot."""
        return self._state

    @property
    def connected(self) -> bool:
        return self.connection.connected

    def handle_event(self, event: StatusEvent) -> None:
        """Fold one inbound event into the state."""
        log.debug("event_received", kind=event.kind)
        self._replace(reduce(self._state, event))
        if self.on_event:
            self.on_event(event)

    def set_input(self, text: str) -> None:
        """Record the unsubmitted input text."""
        self._replace(with_input(self._state, text))

    async def submit(self, text: str | None = None) -> bool:
        """Submit the pending input (or ``text``) as a new job.

        Returns:
            True if a command was derived and written to the wire
        """
        state = self._state if text is None else with_input(self._state, text)
        command, new_state = derive_submit(state)
        if command is None:
            return False
        self._replace(new_state)
        return await self._send(command)

    async def delete_active(self) -> bool:
        """Delete the active job.

        Returns:
            True if a command was derived and written to the wire
        """
        command, new_state = derive_delete(self._state)
        if command is None:
            return False
        self._replace(new_state)
        return await self._send(command)

    async def close(self) -> None:
        """Stop the connection for good."""
        await self.connection.stop()

    async def _send(self, command: OutboundCommand) -> bool:
        log.info("command_submitted", action=command.kind, message=command.payload)
        return await self.connection.send(command)

    def _replace(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._state = state
        if self.on_change:
            self.on_change(state)

    def _handle_open(self) -> None:
        if self.on_connection:
            self.on_connection(True, None)

    def _handle_closed(self, retry_in_ms: int | None) -> None:
        if self.on_connection:
            self.on_connection(False, retry_in_ms)
