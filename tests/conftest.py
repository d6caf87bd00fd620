"""Pytest configuration and shared fixtures."""

import itertools

import pytest

from janus_session import JanusSession, MockClientTransport


@pytest.fixture
def transport() -> MockClientTransport:
    """In-memory transport with no handlers registered."""
    return MockClientTransport()


@pytest.fixture
def transactions():
    """Deterministic transaction ids: tx-1, tx-2, ..."""
    counter = itertools.count(1)
    return lambda: f"tx-{next(counter)}"


@pytest.fixture
def session(transport: MockClientTransport, transactions) -> JanusSession:
    """Unconnected session over the mock transport."""
    return JanusSession(transport, transaction_factory=transactions)
