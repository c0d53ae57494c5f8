"""Tests for the wire protocol codec."""

import json

import pytest

from promecieus.protocol import (
    CONNECT,
    DELETE,
    NEW,
    OutboundCommand,
    ProtocolError,
    Quota,
    StatusEvent,
    decode_event,
    encode_command,
    parse_quota,
)


class TestEncodeCommand:
    """Tests for outbound frames."""

    def test_connect_has_empty_message(self):
        frame = json.loads(encode_command(OutboundCommand(kind=CONNECT)))
        assert frame == {"action": "connect", "message": ""}

    def test_new_carries_submission(self):
        frame = json.loads(encode_command(OutboundCommand(kind=NEW, payload="https://prow/view/1")))
        assert frame == {"action": "new", "message": "https://prow/view/1"}

    def test_delete_carries_job_id(self):
        frame = json.loads(encode_command(OutboundCommand(kind=DELETE, payload="abcdefgh")))
        assert frame == {"action": "delete", "message": "abcdefgh"}

    def test_unknown_kind_rejected(self):
        with pytest.raises(ProtocolError):
            encode_command(OutboundCommand(kind="restart"))


class TestDecodeEvent:
    """Tests for inbound frames."""

    def test_status_frame(self):
        event = decode_event('{"action": "status", "message": "Checking archive"}')
        assert event == StatusEvent(kind="status", payload="Checking archive")

    def test_bytes_frame(self):
        event = decode_event(b'{"action": "done", "message": "ok"}')
        assert event == StatusEvent(kind="done", payload="ok")

    def test_unknown_kind_kept(self):
        """Unknown kinds decode fine; the reducer decides to ignore them."""
        event = decode_event('{"action": "heartbeat", "message": ""}')
        assert event.kind == "heartbeat"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            '{"message": "no action"}',
            '{"action": "status"}',
            '{"action": "app-label", "message": null}',
            '{"action": 5, "message": ""}',
            '{"action": "status", "message": {"nested": true}}',
            b"\xff\xfe",
        ],
    )
    def test_malformed_frames(self, raw):
        with pytest.raises(ProtocolError):
            decode_event(raw)


class TestParseQuota:
    """Tests for rquota payloads."""

    def test_valid_quota(self):
        assert parse_quota('{"used":3,"hard":10}') == Quota(used=3, hard=10)

    def test_float_values(self):
        assert parse_quota('{"used": 1.5, "hard": 4}') == Quota(used=1.5, hard=4)

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "garbage",
            "[3, 10]",
            '{"used": 3}',
            '{"used": "3", "hard": 10}',
            '{"used": true, "hard": 10}',
            '{"used": -1, "hard": 10}',
        ],
    )
    def test_invalid_quota(self, payload):
        with pytest.raises(ProtocolError):
            parse_quota(payload)
