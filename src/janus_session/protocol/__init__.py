"""Wire envelopes exchanged with the gateway."""

from .commands import Command, CommandType
from .events import ACK, SUCCESS, Event, EventType

__all__ = [
    "Command",
    "CommandType",
    "Event",
    "EventType",
    "SUCCESS",
    "ACK",
]
