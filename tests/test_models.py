"""Tests for Pinhook data models."""

import dataclasses

import pytest
from pydantic import ValidationError

from pinhook.models import (
    HANDLER_FAULT,
    OK,
    Error,
    Event,
    Ok,
    Unhandled,
    error,
    handler_fault,
    is_acknowledged,
    ok,
)


class TestEvent:
    """Tests for the Event envelope."""

    def test_minimal(self):
        """Only id and type are required."""
        event = Event.model_validate_json(b'{"id":"evt_1","type":"customer.created"}')
        assert event.id == "evt_1"
        assert event.type == "customer.created"
        assert event.data == {}
        assert event.model_extra == {}
        assert event.data_object is None

    def test_full_envelope(self):
        """Envelope keys beyond id, type, and data should pass through as sent."""
        event = Event.model_validate(
            {
                "id": "evt_1",
                "object": "event",
                "type": "invoice.paid",
                "created": 1700000000,
                "livemode": False,
                "api_version": "2024-06-20",
                "data": {"object": {"id": "in_1", "amount_paid": 500}},
                "pending_webhooks": 2,
            }
        )
        assert event.data_object == {"id": "in_1", "amount_paid": 500}
        assert event.model_extra == {
            "object": "event",
            "created": 1700000000,
            "livemode": False,
            "api_version": "2024-06-20",
            "pending_webhooks": 2,
        }

    def test_untyped_envelope_fields(self):
        """Envelope fields in unexpected types should not be rejected."""
        event = Event.model_validate_json(
            b'{"id":"evt_1","type":"invoice.paid","created":"1700000000","livemode":"yes"}'
        )
        assert event.model_extra == {"created": "1700000000", "livemode": "yes"}

    @pytest.mark.parametrize("data", [[1, 2], "opaque", 7, None, {"nested": [{"a": 1}]}])
    def test_data_is_opaque(self, data):
        """Any JSON value should be accepted as data and kept verbatim."""
        event = Event.model_validate({"id": "evt_1", "type": "invoice.paid", "data": data})
        assert event.data == data

    def test_data_object_requires_mapping(self):
        """data_object should be None when data is not an object."""
        event = Event(id="evt_1", type="invoice.paid", data=["object"])
        assert event.data_object is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "customer.created"},
            {"id": "evt_1"},
            {"id": "", "type": "customer.created"},
            {"id": "evt_1", "type": ""},
        ],
    )
    def test_invalid(self, payload):
        """Missing or empty id/type should be rejected."""
        with pytest.raises(ValidationError):
            Event.model_validate(payload)

    def test_frozen(self, sample_event):
        """Events should be immutable."""
        with pytest.raises(ValidationError):
            sample_event.type = "customer.deleted"


class TestResults:
    """Tests for handler and dispatch results."""

    def test_ok_singleton(self):
        """ok() should return the shared OK marker."""
        assert ok() is OK
        assert ok() == Ok()

    def test_error(self):
        """error() should carry its reason and no detail."""
        result = error("crm down")
        assert result == Error(reason="crm down")
        assert result.detail is None
        assert not result.is_fault

    def test_handler_fault(self):
        """handler_fault() should use the fault reason."""
        result = handler_fault("KeyError: 'x'")
        assert result.reason == HANDLER_FAULT
        assert result.detail == "KeyError: 'x'"
        assert result.is_fault

    def test_results_are_immutable(self):
        """Result markers should be frozen."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            error("x").reason = "y"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("result", "acknowledged"),
        [
            (OK, True),
            (Unhandled(event_type="invoice.paid"), True),
            (error("retry"), False),
            (handler_fault("boom"), False),
        ],
    )
    def test_is_acknowledged(self, result, acknowledged):
        """Ok and Unhandled are acknowledged; Error is not."""
        assert is_acknowledged(result) is acknowledged
