"""
Shared test fixtures and helpers for the Halyard test suite.
"""

import pytest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from halyard.config import HalyardConfig
from halyard.context import BufferSink, DispatchContext
from halyard.signals import SignalBus


# ============================================================================
# Request Helpers
# ============================================================================


@dataclass
class FakeIdentity:
    name: str
    roles: List[str] = field(default_factory=list)
    is_guest: bool = False


@dataclass
class FakeRequest:
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    identity: Optional[Any] = None
    client: Optional[tuple] = ("127.0.0.1", 12345)


def make_request(
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    identity: Optional[Any] = None,
    client: Optional[tuple] = ("127.0.0.1", 12345),
) -> FakeRequest:
    """Build a minimal request object."""
    return FakeRequest(method=method, headers=headers or {}, identity=identity, client=client)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def identity_factory():
    def _make(name: str = "alice", roles: Optional[List[str]] = None) -> FakeIdentity:
        return FakeIdentity(name=name, roles=roles or [])
    return _make


@pytest.fixture
def sink():
    return BufferSink()


@pytest.fixture
def context(sink):
    """Dispatch context with a fresh bus, a buffer sink and a GET request."""
    return DispatchContext(
        signals=SignalBus(),
        request=make_request(),
        sink=sink,
        config=HalyardConfig(),
    )


@pytest.fixture
def lenient_context(sink):
    """Context that tolerates unknown option fields."""
    return DispatchContext(
        signals=SignalBus(),
        request=make_request(),
        sink=sink,
        config=HalyardConfig(strict_options=False),
    )
