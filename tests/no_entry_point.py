"""Module without a handle_event entry point."""

VALUE = 1
