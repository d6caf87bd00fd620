"""Command envelopes sent to the gateway.

Every request body the client POSTs is a command envelope: a flat JSON
object carrying the command verb under ``janus``, a ``transaction`` used
to correlate the reply, and any command-specific fields (``plugin``,
``body``, ...) alongside them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class CommandType(str, Enum):
    """Command verbs issued by the session layer."""

    CREATE = "create"
    ATTACH = "attach"
    MESSAGE = "message"


class Command(BaseModel):
    """A command from client to gateway.

    Command-specific fields are stored as pydantic extras so they serialize
    flat next to ``janus`` and ``transaction``:

        {
            "janus": "attach",
            "plugin": "janus.plugin.echotest",
            "transaction": "5f0c9d4e..."
        }

    The transaction is never supplied by callers; the dispatcher stamps it
    with ``with_transaction()`` immediately before sending.
    """

    model_config = ConfigDict(extra="allow")

    janus: str
    transaction: str | None = None

    @property
    def params(self) -> dict[str, Any]:
        """Command-specific fields (everything besides janus/transaction)."""
        return dict(self.model_extra or {})

    def with_transaction(self, transaction: str) -> Command:
        """Return a copy of this command carrying ``transaction``."""
        return self.model_copy(update={"transaction": transaction})

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict for the request body."""
        wire = self.model_dump()
        if wire.get("transaction") is None:
            wire.pop("transaction", None)
        return wire

    @classmethod
    def create(
        cls,
        command: str | CommandType,
        payload: dict[str, Any] | None = None,
    ) -> Command:
        """Build an envelope from a verb and optional payload.

        The verb always wins over a ``janus`` key in the payload, and any
        caller-supplied ``transaction`` is dropped.
        """
        fields = dict(payload or {})
        fields.pop("transaction", None)
        fields["janus"] = command.value if isinstance(command, CommandType) else command
        return cls(**fields)

    # Convenience factories for the commands the session layer issues
    @classmethod
    def session_create(cls) -> Command:
        """Create a ``create`` command."""
        return cls.create(CommandType.CREATE)

    @classmethod
    def attach(cls, plugin: str) -> Command:
        """Create an ``attach`` command for a fully qualified plugin namespace."""
        return cls.create(CommandType.ATTACH, {"plugin": plugin})

    @classmethod
    def message(cls, body: Any = None) -> Command:
        """Create a plugin ``message`` command; ``body`` is opaque."""
        return cls.create(CommandType.MESSAGE, {"body": {} if body is None else body})
