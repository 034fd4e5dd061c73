"""Tests for the event registry."""

from __future__ import annotations

from collections.abc import Mapping

import pytest

import sample_handlers
from pinhook.exceptions import DuplicateHandlerError, InvalidRegistrationError, RegistryError
from pinhook.models import ok
from pinhook.webhooks.registry import (
    EventRegistry,
    Handler,
    HandlerKind,
    HandlerRegistration,
    RegistryBuilder,
    resolve_handler,
)


def on_customer_created(event):
    return ok()


def on_customer_deleted(event):
    return ok()


class InvoiceHandler:
    """Object exposing handle_event."""

    def handle_event(self, event):
        return ok()


class TestResolveHandler:
    """Tests for handler normalization."""

    def test_function(self):
        """Plain callables should become FUNCTION handlers."""
        handler = resolve_handler(on_customer_created)
        assert handler.kind is HandlerKind.FUNCTION
        assert handler.target is on_customer_created
        assert handler.name.endswith("on_customer_created")

    def test_lambda(self):
        """Lambdas are plain callables too."""
        handler = resolve_handler(lambda event: ok())
        assert handler.kind is HandlerKind.FUNCTION

    def test_module(self):
        """Modules with handle_event should become MODULE handlers."""
        handler = resolve_handler(sample_handlers)
        assert handler.kind is HandlerKind.MODULE
        assert handler.name == "sample_handlers"
        assert handler.target is sample_handlers.handle_event

    def test_object_with_entry_point(self):
        """Objects with handle_event should become MODULE handlers."""
        instance = InvoiceHandler()
        handler = resolve_handler(instance)
        assert handler.kind is HandlerKind.MODULE
        assert handler.name.endswith("InvoiceHandler")

    def test_import_path_module(self):
        """Module import path should resolve to its handle_event."""
        handler = resolve_handler("sample_handlers")
        assert handler.kind is HandlerKind.MODULE
        assert handler.name == "sample_handlers"

    def test_import_path_function(self):
        """module:attr import path should resolve to the attribute."""
        handler = resolve_handler("sample_handlers:on_invoice_paid")
        assert handler.kind is HandlerKind.FUNCTION
        assert handler.target is sample_handlers.on_invoice_paid
        assert handler.name == "sample_handlers:on_invoice_paid"

    def test_import_path_class(self):
        """Classes with a static handle_event resolve as MODULE handlers."""
        handler = resolve_handler("sample_handlers:SubscriptionHandler")
        assert handler.kind is HandlerKind.MODULE

    def test_handler_passes_through(self):
        """Already-normalized handlers should be returned unchanged."""
        handler = Handler(kind=HandlerKind.FUNCTION, name="x", target=on_customer_created)
        assert resolve_handler(handler) is handler

    def test_unknown_module(self):
        """Unimportable module should be an invalid registration."""
        with pytest.raises(InvalidRegistrationError, match="Cannot import"):
            resolve_handler("does_not_exist_anywhere.handlers")

    def test_missing_attribute(self):
        """Missing attribute should be an invalid registration."""
        with pytest.raises(InvalidRegistrationError, match="no attribute"):
            resolve_handler("sample_handlers:missing")

    def test_empty_module_path(self):
        """':attr' without a module should be rejected."""
        with pytest.raises(InvalidRegistrationError):
            resolve_handler(":handle_event")

    def test_module_without_entry_point(self):
        """Modules must define handle_event."""
        with pytest.raises(InvalidRegistrationError, match="handle_event"):
            resolve_handler("no_entry_point")

    @pytest.mark.parametrize("spec", [42, None, "sample_handlers:not_a_handler"])
    def test_not_callable(self, spec):
        """Non-callable values should be rejected."""
        with pytest.raises(InvalidRegistrationError):
            resolve_handler(spec)


class TestEventRegistry:
    """Tests for EventRegistry."""

    def test_lookup_registered(self):
        """Distinct types should each reach their own handler."""
        registry = EventRegistry.from_pairs(
            [
                ("customer.created", on_customer_created),
                ("customer.deleted", on_customer_deleted),
            ]
        )
        assert registry.lookup("customer.created").target is on_customer_created
        assert registry.lookup("customer.deleted").target is on_customer_deleted

    def test_lookup_unregistered(self):
        """Unregistered types should return None."""
        registry = EventRegistry.from_pairs([("customer.created", on_customer_created)])
        assert registry.lookup("customer.updated") is None

    def test_lookup_is_exact(self):
        """Lookup should not match prefixes or differing case."""
        registry = EventRegistry.from_pairs([("customer.created", on_customer_created)])
        assert registry.lookup("customer") is None
        assert registry.lookup("Customer.Created") is None

    def test_duplicate_rejected(self):
        """Registering the same type twice should fail."""
        with pytest.raises(DuplicateHandlerError) as exc_info:
            EventRegistry.from_pairs(
                [
                    ("customer.created", on_customer_created),
                    ("customer.created", on_customer_deleted),
                ]
            )
        assert exc_info.value.event_type == "customer.created"
        assert isinstance(exc_info.value, RegistryError)

    def test_duplicate_same_handler_rejected(self):
        """Even the same handler twice is a duplicate."""
        with pytest.raises(DuplicateHandlerError):
            EventRegistry(
                [
                    HandlerRegistration("invoice.paid", on_customer_created),
                    HandlerRegistration("invoice.paid", on_customer_created),
                ]
            )

    @pytest.mark.parametrize("event_type", ["", "  ", "customer created", " customer.created", 7])
    def test_invalid_event_type(self, event_type):
        """Blank, whitespace, or non-string event types should be rejected."""
        with pytest.raises(InvalidRegistrationError):
            EventRegistry.from_pairs([(event_type, on_customer_created)])

    def test_mapping_interface(self):
        """Registry should behave as a read-only mapping in registration order."""
        registry = EventRegistry.from_pairs(
            [
                ("customer.deleted", on_customer_deleted),
                ("customer.created", on_customer_created),
            ]
        )
        assert isinstance(registry, Mapping)
        assert len(registry) == 2
        assert list(registry) == ["customer.deleted", "customer.created"]
        assert registry.event_types == ("customer.deleted", "customer.created")
        assert "customer.created" in registry
        assert registry["customer.created"].target is on_customer_created
        with pytest.raises(KeyError):
            registry["invoice.paid"]

    def test_immutable(self):
        """Registry should not support item assignment."""
        registry = EventRegistry.from_pairs([("customer.created", on_customer_created)])
        with pytest.raises(TypeError):
            registry["invoice.paid"] = on_customer_deleted  # type: ignore[index]
        with pytest.raises(TypeError):
            registry._handlers["invoice.paid"] = on_customer_deleted  # type: ignore[index]

    def test_empty(self):
        """Empty registry is valid."""
        registry = EventRegistry()
        assert len(registry) == 0
        assert registry.lookup("customer.created") is None

    def test_repr(self):
        """repr should list event types."""
        registry = EventRegistry.from_pairs([("customer.created", on_customer_created)])
        assert repr(registry) == "EventRegistry(['customer.created'])"


class TestRegistryBuilder:
    """Tests for RegistryBuilder."""

    def test_register_and_build(self):
        """Builder should produce a registry with the registrations."""
        registry = (
            RegistryBuilder()
            .register("customer.created", on_customer_created)
            .register("invoice.paid", "sample_handlers:on_invoice_paid")
            .build()
        )
        assert registry.event_types == ("customer.created", "invoice.paid")

    def test_decorator(self):
        """on() should register and return the function unchanged."""
        builder = RegistryBuilder()

        @builder.on("customer.created")
        def handle(event):
            return ok()

        assert callable(handle)
        assert builder.build().lookup("customer.created").target is handle

    def test_duplicate_fails_at_registration(self):
        """Duplicates should be reported by register(), not build()."""
        builder = RegistryBuilder().register("customer.created", on_customer_created)
        with pytest.raises(DuplicateHandlerError):
            builder.register("customer.created", on_customer_deleted)
        assert len(builder.registrations) == 1

    def test_register_after_build(self):
        """Builder should refuse registrations once built."""
        builder = RegistryBuilder().register("customer.created", on_customer_created)
        registry = builder.build()
        with pytest.raises(InvalidRegistrationError, match="already built"):
            builder.register("invoice.paid", on_customer_deleted)
        assert len(registry) == 1

    def test_invalid_handler_fails_at_build(self):
        """Handler resolution happens when the registry is built."""
        builder = RegistryBuilder().register("customer.created", "sample_handlers:missing")
        with pytest.raises(InvalidRegistrationError):
            builder.build()

    def test_failed_build_leaves_builder_open(self):
        """A build that fails to resolve a handler should not lock the builder."""
        builder = RegistryBuilder().register("customer.created", "sample_handlers:missing")
        with pytest.raises(InvalidRegistrationError):
            builder.build()

        builder.register("invoice.paid", on_customer_deleted)
        assert [r.event_type for r in builder.registrations] == ["customer.created", "invoice.paid"]
