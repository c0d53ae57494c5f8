"""Wire protocol for the status WebSocket.

Every frame is one JSON object ``{"action": str, "message": str}``.
Inbound actions describe job progress; outbound actions carry user intents.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

# Inbound event kinds
STATUS = "status"
PROGRESS = "progress"
FAILURE = "failure"
DONE = "done"
LINK = "link"
APP_LABEL = "app-label"
RQUOTA = "rquota"

# Outbound command kinds
CONNECT = "connect"
NEW = "new"
DELETE = "delete"

COMMAND_KINDS = frozenset({CONNECT, NEW, DELETE})


class ProtocolError(ValueError):
    """Raised when a frame or payload does not match the wire format."""


@dataclass(frozen=True)
class StatusEvent:
    """One inbound event. Unknown kinds are kept so the reducer can ignore them."""

    kind: str
    payload: str


@dataclass(frozen=True)
class OutboundCommand:
    """One outbound user intent."""

    kind: str
    payload: str = ""

    def to_frame(self) -> dict[str, str]:
        """Wire representation of this command."""
        return {"action": self.kind, "message": self.payload}


@dataclass(frozen=True)
class Quota:
    """Resource quota usage reported by the service."""

    used: float = 0
    hard: float = 0


def encode_command(command: OutboundCommand) -> str:
    """Serialize a command to a JSON text frame.

    Raises:
        ProtocolError: If the command kind is not part of the protocol
    """
    if command.kind not in COMMAND_KINDS:
        raise ProtocolError(f"Unknown command kind: {command.kind!r}")
    return json.dumps(command.to_frame())


def decode_event(raw: str | bytes) -> StatusEvent:
    """Parse one inbound text frame.

    Raises:
        ProtocolError: If the frame is not a JSON object with string
            ``action`` and ``message`` fields
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Frame is not UTF-8: {e}") from e

    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(f"Frame must be a JSON object, got {type(data).__name__}")

    action = data.get("action")
    message = data.get("message")
    if not isinstance(action, str):
        raise ProtocolError("Frame is missing a string 'action'")
    if not isinstance(message, str):
        raise ProtocolError("Frame is missing a string 'message'")

    return StatusEvent(kind=action, payload=message)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_quota(payload: str) -> Quota:
    """Parse an ``rquota`` payload into a Quota.

    Raises:
        ProtocolError: If the payload is not a ``{"used", "hard"}`` record of
            non-negative numbers
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Quota payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError("Quota payload must be a JSON object")

    used = data.get("used")
    hard = data.get("hard")
    if not _is_number(used) or not _is_number(hard):
        raise ProtocolError(f"Quota payload needs numeric 'used' and 'hard': {payload!r}")
    if used < 0 or hard < 0:
        raise ProtocolError(f"Quota values must be non-negative: {payload!r}")

    return Quota(used=used, hard=hard)
