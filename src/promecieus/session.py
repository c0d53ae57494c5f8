"""Session state and its pure transitions.

The controller owns exactly one SessionState and replaces it with the value
returned here. Nothing in this module touches the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import structlog

from promecieus.protocol import (
    APP_LABEL,
    DELETE,
    DONE,
    FAILURE,
    LINK,
    NEW,
    PROGRESS,
    RQUOTA,
    STATUS,
    OutboundCommand,
    ProtocolError,
    Quota,
    StatusEvent,
    parse_quota,
)

log = structlog.get_logger()

# Kinds appended to the visible log without further effect
_APPEND_ONLY = frozenset({STATUS, PROGRESS, FAILURE, LINK})


@dataclass(frozen=True)
class SessionState:
    """Display-ready session state."""

    pending_input: str = ""
    log: tuple[StatusEvent, ...] = ()
    active_job_id: str | None = None
    quota: Quota = field(default_factory=Quota)

    @property
    def has_active_job(self) -> bool:
        return self.active_job_id is not None


def reduce(state: SessionState, event: StatusEvent) -> SessionState:
    """Fold one inbound event into the session state.

    Unknown kinds return the state unchanged. A malformed ``rquota`` payload
    or an ``app-label`` without a job id is logged and dropped.
    """
    if event.kind in _APPEND_ONLY:
        return replace(state, log=state.log + (event,))

    if event.kind == DONE:
        # done is appended first, so it survives the progress purge
        entries = state.log + (event,)
        return replace(state, log=tuple(e for e in entries if e.kind != PROGRESS))

    if event.kind == APP_LABEL:
        if not event.payload:
            log.warning("label_dropped", reason="empty job id")
            return state
        return replace(state, log=state.log + (event,), active_job_id=event.payload)

    if event.kind == RQUOTA:
        try:
            quota = parse_quota(event.payload)
        except ProtocolError as e:
            log.warning("quota_dropped", payload=event.payload, error=str(e))
            return state
        return replace(state, quota=quota)

    log.debug("event_ignored", kind=event.kind)
    return state


def with_input(state: SessionState, text: str) -> SessionState:
    """Replace the unsubmitted input text."""
    return replace(state, pending_input=text)


def derive_submit(state: SessionState) -> tuple[OutboundCommand | None, SessionState]:
    """Derive the ``new`` command for the pending input.

    A fresh submission discards prior history. Empty input yields no command.
    """
    if not state.pending_input:
        return None, state
    command = OutboundCommand(kind=NEW, payload=state.pending_input)
    return command, replace(state, log=())


def derive_delete(state: SessionState) -> tuple[OutboundCommand | None, SessionState]:
    """Derive the ``delete`` command for the active job.

    Drops the oldest log entry, which is the app-label entry that introduced
    the job when nothing preceded it. No active job yields no command.
    """
    if state.active_job_id is None:
        return None, state
    command = OutboundCommand(kind=DELETE, payload=state.active_job_id)
    return command, replace(state, log=state.log[1:], active_job_id=None)
