"""Tests for socket envelope parsing."""

import json

from journal_client.messaging.schemas import Envelope, MessageType, build_envelope, parse_envelope


class TestParseEnvelope:
    """Tests for parse_envelope."""

    def test_known_type(self):
        """A valid frame parses into an Envelope."""
        envelope = parse_envelope(json.dumps({"type": "ENTRIES_LIST", "data": [{"id": 1}]}))
        assert envelope.message_type == MessageType.ENTRIES_LIST
        assert envelope.data == [{"id": 1}]

    def test_bytes_frame(self):
        """Binary frames are decoded as UTF-8."""
        envelope = parse_envelope(b'{"type": "ERROR", "message": "Invalid entry"}')
        assert envelope.message_type == MessageType.ERROR
        assert envelope.message == "Invalid entry"

    def test_extra_fields_kept(self):
        """Unknown envelope fields are preserved."""
        envelope = parse_envelope(json.dumps({"type": "ENTRY_SAVED", "data": {}, "requestId": "r1"}))
        assert envelope.model_extra == {"requestId": "r1"}

    def test_malformed_frames(self):
        """Invalid JSON, non-objects and missing types are rejected."""
        assert parse_envelope("{not json") is None
        assert parse_envelope("42") is None
        assert parse_envelope(json.dumps({"data": {}})) is None
        assert parse_envelope(json.dumps({"type": ""})) is None


class TestBuildEnvelope:
    """Tests for building outbound envelopes."""

    def test_build_from_enum(self):
        """MessageType members are stored as their string value."""
        envelope = build_envelope(MessageType.SAVE_ENTRY, {"title": "t"})
        assert envelope.type == "SAVE_ENTRY"
        assert json.loads(envelope.to_frame()) == {"type": "SAVE_ENTRY", "data": {"title": "t"}}

    def test_unknown_type_has_no_message_type(self):
        """Free-form types are allowed but not recognized."""
        assert Envelope(type="PING").message_type is None
