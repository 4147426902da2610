"""Tests for envelope validation."""

import base64

import pytest

from packages.event_bridge import (
    EnvelopeValidationError,
    EventCategory,
    EventEnvelope,
    receive,
)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


class TestEventEnvelope:
    """Tests for the envelope model."""

    def test_parses_wire_names(self):
        envelope = EventEnvelope.model_validate({"Type": "Event", "Obj": "e30="})
        assert envelope.type == "Event"
        assert envelope.obj == "e30="

    def test_missing_fields_default_to_empty(self):
        envelope = EventEnvelope.model_validate({})
        assert envelope.type == ""
        assert envelope.obj == ""


class TestReceive:
    """Tests for receive()."""

    @pytest.mark.parametrize("category", ["Event", "AdminEvent"])
    def test_accepts_known_categories(self, category):
        request = receive(EventEnvelope(type=category, obj=_b64(b'{"type": "LOGIN"}')))

        assert request.category == EventCategory(category)
        assert request.payload == b'{"type": "LOGIN"}'

    @pytest.mark.parametrize("category", ["", "event", "UserEvent"])
    def test_rejects_unknown_type(self, category):
        with pytest.raises(EnvelopeValidationError) as exc_info:
            receive(EventEnvelope(type=category, obj=_b64(b"payload")))

        assert exc_info.value.param == "type"
        assert str(exc_info.value) == "invalidArgument.type"

    @pytest.mark.parametrize("obj", ["not base64!", "abc", "@@@@"])
    def test_rejects_bad_encoding(self, obj):
        with pytest.raises(EnvelopeValidationError) as exc_info:
            receive(EventEnvelope(type="Event", obj=obj))

        assert exc_info.value.param == "encoding"

    def test_rejects_short_payload(self):
        """base64("ab") decodes to two bytes: too short."""
        with pytest.raises(EnvelopeValidationError) as exc_info:
            receive(EventEnvelope(type="AdminEvent", obj=_b64(b"ab")))

        assert exc_info.value.param == "length"
        assert str(exc_info.value) == "invalidArgument.length"

    def test_empty_obj_is_too_short(self):
        with pytest.raises(EnvelopeValidationError) as exc_info:
            receive(EventEnvelope(type="Event", obj=""))

        assert exc_info.value.param == "length"

    def test_minimum_length_accepted(self):
        request = receive(EventEnvelope(type="Event", obj=_b64(b"abcd")))
        assert request.payload == b"abcd"

    def test_type_checked_before_encoding(self):
        with pytest.raises(EnvelopeValidationError) as exc_info:
            receive(EventEnvelope(type="Bogus", obj="not base64!"))

        assert exc_info.value.param == "type"
