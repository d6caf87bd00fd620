"""Janus Session - client for the gateway's HTTP long-poll API.

Usage:
    from janus_session import JanusSession

    async with JanusSession() as session:
        await session.connect("http://localhost:8088/janus")
        echotest = await session.activate("echotest")
        event = await echotest.send({"audio": True})
"""

from .errors import (
    CorrelationError,
    DecodeError,
    JanusError,
    ProtocolMismatchError,
    SessionAlreadyConnectedError,
    SessionNotConnectedError,
    TransportError,
)
from .protocol import ACK, SUCCESS, Command, CommandType, Event, EventType
from .session import PLUGIN_PREFIX, JanusSession, PluginHandle, expand_namespace, normalize_uri
from .transport import (
    BaseClientTransport,
    ClientTransport,
    ClientTransportConfig,
    HTTPClientTransport,
    MockClientTransport,
    RecordedRequest,
    TransportResponse,
    create_http_transport,
    create_mock_transport,
)

__all__ = [
    # Session
    "JanusSession",
    "PluginHandle",
    "PLUGIN_PREFIX",
    "expand_namespace",
    "normalize_uri",
    # Protocol
    "Command",
    "CommandType",
    "Event",
    "EventType",
    "SUCCESS",
    "ACK",
    # Errors
    "JanusError",
    "TransportError",
    "DecodeError",
    "ProtocolMismatchError",
    "CorrelationError",
    "SessionNotConnectedError",
    "SessionAlreadyConnectedError",
    # Transport
    "ClientTransport",
    "BaseClientTransport",
    "ClientTransportConfig",
    "TransportResponse",
    "RecordedRequest",
    "HTTPClientTransport",
    "MockClientTransport",
    "create_http_transport",
    "create_mock_transport",
]
