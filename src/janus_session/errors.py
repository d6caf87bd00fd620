"""Errors raised by the session layer.

Every failure is raised from the awaited operation that caused it; nothing
is retried. Errors from a dependent command (e.g. the ``attach`` behind
``activate``) propagate unchanged.
"""

from __future__ import annotations


class JanusError(Exception):
    """Base class for all session layer errors."""


class TransportError(JanusError):
    """The gateway answered with a non-200 status, or could not be reached.

    ``status_code`` is None when the request never produced a response.
    """

    def __init__(self, status_code: int | None, detail: str | None = None):
        self.status_code = status_code
        message = f"request failed: {status_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DecodeError(JanusError):
    """A 200 response body was not a JSON object."""

    def __init__(self, content: bytes | str, reason: str):
        self.content = content
        super().__init__(f"invalid response body: {reason}")


class ProtocolMismatchError(JanusError):
    """The reply marker was not the one the command expects.

    When the gateway replied with an ``error`` envelope its reason is kept
    in ``reason``.
    """

    def __init__(self, marker: str | None, expected: str, reason: str | None = None):
        self.marker = marker
        self.expected = expected
        self.reason = reason
        message = f"request failed: {marker}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CorrelationError(JanusError):
    """The reply echoed a different transaction than the one sent."""

    def __init__(self, expected: str, received: str | None):
        self.expected = expected
        self.received = received
        super().__init__("request mismatch from janus")


class SessionNotConnectedError(JanusError):
    """An operation needing a session id ran before ``connect`` succeeded."""


class SessionAlreadyConnectedError(JanusError):
    """``connect`` was called on a session that already has an id."""
