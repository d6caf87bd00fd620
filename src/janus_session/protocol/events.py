"""Inbound envelopes from the gateway.

The same shape covers both kinds of inbound body:
- Replies: the direct answer to a command, echoing its ``transaction``
  and carrying a ``data`` payload (``success``) or nothing (``ack``)
- Pushed events: returned by a long-poll GET, not tied to any command the
  caller is waiting on (``event``, ``webrtcup``, ``hangup``, ...)

Example (reply):
    {"janus": "success", "transaction": "5f0c9d4e...", "data": {"id": 42}}

Example (pushed plugin event):
    {
        "janus": "event",
        "session_id": 42,
        "sender": 99,
        "transaction": "5f0c9d4e...",
        "plugindata": {"plugin": "janus.plugin.echotest", "data": {...}}
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

# Expected reply markers
SUCCESS = "success"
ACK = "ack"


class EventType(str, Enum):
    """Values of the ``janus`` field seen on inbound bodies."""

    SUCCESS = "success"
    ACK = "ack"
    ERROR = "error"

    # Pushed by long-poll
    EVENT = "event"
    KEEPALIVE = "keepalive"
    WEBRTCUP = "webrtcup"
    MEDIA = "media"
    SLOWLINK = "slowlink"
    HANGUP = "hangup"
    DETACHED = "detached"
    TIMEOUT = "timeout"


class Event(BaseModel):
    """An inbound body from the gateway.

    Unknown keys are kept as extras so plugin-specific payloads survive
    validation untouched.
    """

    model_config = ConfigDict(extra="allow")

    janus: str | None = None
    transaction: str | None = None
    data: dict[str, Any] | None = None

    # Present on pushed events
    session_id: int | str | None = None
    sender: int | str | None = None
    plugindata: dict[str, Any] | None = None
    jsep: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    def is_reply_to(self, transaction: str | None) -> bool:
        """Check whether this body echoes ``transaction``."""
        return self.transaction == transaction

    def is_plugin_event(self) -> bool:
        """Check if this is a plugin-originated event."""
        return self.janus == EventType.EVENT.value and self.plugindata is not None

    @property
    def plugin_data(self) -> dict[str, Any]:
        """The plugin's own payload, or an empty dict."""
        if not self.plugindata:
            return {}
        return self.plugindata.get("data") or {}
