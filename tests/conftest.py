"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import pytest

from pinhook.config import Settings
from pinhook.models import Event

# Add tests directory to path so handler fixture modules can be imported by path
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

TEST_SECRET = "whsec_test"


@pytest.fixture
def secret() -> str:
    """Signing secret shared by sender and receiver in tests."""
    return TEST_SECRET


@pytest.fixture
def now() -> int:
    """Current unix time, truncated to whole seconds."""
    return int(time.time())


@pytest.fixture
def raw_body() -> bytes:
    """Minimal event body exactly as a sender would serialize it."""
    return b'{"id":"evt_1","type":"customer.created"}'


@pytest.fixture
def sample_event() -> Event:
    """A decoded customer.created event."""
    return Event(
        id="evt_test123",
        type="customer.created",
        data={"object": {"id": "cus_123", "email": "jane@example.com"}},
    )


@pytest.fixture
def settings(secret: str) -> Settings:
    """Test settings with a single signing secret."""
    return Settings(env="test", signing_secrets=[secret], log_format="text")


def event_body(event_id: str = "evt_1", event_type: str = "customer.created", **extra) -> bytes:
    """Serialize an event envelope the way the sender does (compact JSON)."""
    payload = {"id": event_id, "type": event_type, **extra}
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")
