"""Session layer for the gateway's HTTP long-poll API.

A JanusSession owns one server-side session:
- connect() performs the ``create`` handshake and stores the session id
- activate() attaches a plugin and registers a PluginHandle for it
- PluginHandle.send() posts a plugin message, waits for the ``ack`` and
  then long-polls once for the resulting event
- events() long-polls repeatedly for events pushed by the gateway

Every command goes through _post(), which stamps a fresh transaction on
the envelope and validates the reply in a fixed order: HTTP status, JSON
body, reply marker, echoed transaction.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from .errors import (
    CorrelationError,
    DecodeError,
    JanusError,
    ProtocolMismatchError,
    SessionAlreadyConnectedError,
    SessionNotConnectedError,
    TransportError,
)
from .protocol.commands import Command, CommandType
from .protocol.events import ACK, SUCCESS, Event
from .transport import ClientTransport, TransportResponse, create_http_transport

logger = logging.getLogger(__name__)

PLUGIN_PREFIX = "janus.plugin."
NAMESPACE_DELIMITER = "."

# Bodies are logged at debug level, cut to this many bytes
BODY_LOG_LIMIT = 200


def _default_transaction() -> str:
    return uuid.uuid4().hex


def normalize_uri(uri: str) -> str:
    """Strip one trailing slash from ``uri``."""
    return uri[:-1] if uri.endswith("/") else uri


def expand_namespace(namespace: str, prefix: str = PLUGIN_PREFIX) -> tuple[str, str]:
    """Resolve a plugin name to ``(namespace, short_name)``.

    A bare name such as ``echotest`` is expanded with ``prefix``; the short
    name is always the last dotted segment of the resulting namespace.
    """
    if NAMESPACE_DELIMITER not in namespace:
        namespace = prefix + namespace
    return namespace, namespace.rsplit(NAMESPACE_DELIMITER, 1)[-1]


@dataclass
class PluginHandle:
    """An attached plugin within a session."""

    name: str
    namespace: str
    handle_id: Any
    _session: JanusSession = field(repr=False)

    async def send(self, body: Any = None) -> Event:
        """Send ``body`` to the plugin and return the next polled event."""
        return await self._session._message(self.handle_id, body)


class JanusSession:
    """Client side of one gateway session.

    Usage:
        async with JanusSession() as session:
            await session.connect("http://localhost:8088/janus")
            echotest = await session.activate("echotest")
            event = await echotest.send({"audio": True})

    Operations may run concurrently (e.g. under ``asyncio.gather``); replies
    are matched by transaction only. No operation retries.
    """

    def __init__(
        self,
        transport: ClientTransport | None = None,
        *,
        transaction_factory: Callable[[], str] | None = None,
        plugin_prefix: str = PLUGIN_PREFIX,
        owns_transport: bool | None = None,
    ):
        self._owns_transport = transport is None if owns_transport is None else owns_transport
        self._transport: ClientTransport = transport or create_http_transport()
        self._new_transaction = transaction_factory or _default_transaction
        self._plugin_prefix = plugin_prefix

        # Assigned by the gateway on create
        self._id: Any | None = None
        self._uri: str | None = None

        # Short plugin name -> handle id, and the handle objects themselves
        self.plugins: dict[str, Any] = {}
        self.handles: dict[str, PluginHandle] = {}

        self._in_flight: set[str] = set()
        self._connecting = False

    @property
    def id(self) -> Any | None:
        """Session id, None until connect() succeeds."""
        return self._id

    @property
    def uri(self) -> str | None:
        """Gateway base URI without trailing slash."""
        return self._uri

    @property
    def transport(self) -> ClientTransport:
        return self._transport

    @property
    def is_connected(self) -> bool:
        return self._id is not None

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def connect(self, uri: str) -> None:
        """Create the server-side session at ``uri``.

        Raises:
            SessionAlreadyConnectedError: If this session already has an id or
                another connect() is still waiting for its reply
            JanusError: If the create command fails
        """
        if self._id is not None:
            raise SessionAlreadyConnectedError(f"session {self._id} is already connected")
        if self._connecting:
            raise SessionAlreadyConnectedError("a create is already in flight for this session")

        self._connecting = True
        try:
            self._uri = normalize_uri(uri)
            data = await self._post(Command.session_create())

            session_id = (data or {}).get("id")
            if session_id is None:
                raise JanusError("create reply carried no session id")

            self._id = session_id
        finally:
            self._connecting = False

        logger.info(f"Created session {session_id} at {self._uri}")

    # =========================================================================
    # Plugin attachment
    # =========================================================================

    async def activate(self, namespace: str) -> PluginHandle:
        """Attach a plugin and register a handle for it.

        ``namespace`` may be fully qualified (``janus.plugin.echotest``) or a
        bare name (``echotest``). The handle is registered under the last
        dotted segment; activating the same name again replaces it.
        """
        self._require_connected()
        namespace, name = expand_namespace(namespace, self._plugin_prefix)

        data = await self._post(Command.attach(namespace))

        handle_id = (data or {}).get("id")
        if handle_id is None:
            raise JanusError(f"attach reply for {namespace} carried no handle id")

        handle = PluginHandle(name=name, namespace=namespace, handle_id=handle_id, _session=self)
        self.plugins[name] = handle_id
        self.handles[name] = handle
        logger.info(f"Attached {namespace} as handle {handle_id} in session {self._id}")
        return handle

    def handle(self, name: str) -> PluginHandle:
        """Look up an attached plugin by short name.

        Raises:
            KeyError: If no plugin with that name has been activated
        """
        try:
            return self.handles[name]
        except KeyError:
            raise KeyError(f"plugin not attached: {name}") from None

    # =========================================================================
    # Commands
    # =========================================================================

    async def _command(
        self,
        command: str | CommandType,
        payload: dict[str, Any] | None = None,
        *,
        path: str | None = None,
        ok: str = SUCCESS,
    ) -> dict[str, Any] | None:
        """Send ``command`` with ``payload`` merged into the envelope."""
        return await self._post(Command.create(command, payload), path=path, ok=ok)

    async def _message(self, handle_id: Any, body: Any = None) -> Event:
        """Send a plugin message, then poll once for the outcome.

        The gateway only acknowledges the message; its result arrives as an
        event, so the poll runs only after the ``ack`` validated.
        """
        self._require_connected()
        await self._post(Command.message(body), path=str(handle_id), ok=ACK)
        return await self._status()

    async def _post(
        self,
        command: Command,
        *,
        path: str | None = None,
        ok: str = SUCCESS,
    ) -> dict[str, Any] | None:
        """Dispatch ``command`` and return the validated reply's ``data``.

        Raises, in check order:
            TransportError: Status other than 200
            DecodeError: Body is not a JSON object
            ProtocolMismatchError: ``janus`` marker is not ``ok``
            CorrelationError: Reply transaction differs from the one sent
        """
        if self._uri is None:
            raise SessionNotConnectedError("no gateway uri; call connect() first")

        transaction = self._reserve_transaction()
        command = command.with_transaction(transaction)

        uri = self._uri
        if self._id is not None:
            uri += f"/{self._id}"
        if path:
            uri += f"/{path}"

        try:
            logger.debug(f"POST {uri} janus={command.janus} transaction={transaction}")
            response = await self._transport.request(
                "POST",
                uri,
                content=json.dumps(command.to_wire()).encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        finally:
            self._in_flight.discard(transaction)

        logger.debug(f"Reply to {transaction}: {response.status_code} {_preview(response.content)}")
        _check_status(response)
        body = _decode(response)

        marker = body.get("janus")
        if marker != ok:
            reason = None
            if isinstance(body.get("error"), dict):
                reason = body["error"].get("reason")
            logger.warning(f"{command.janus} failed: expected {ok!r}, got {marker!r}")
            raise ProtocolMismatchError(marker, ok, reason)

        if body.get("transaction") != transaction:
            logger.warning(f"{command.janus} reply has transaction {body.get('transaction')!r}")
            raise CorrelationError(transaction, body.get("transaction"))

        return body.get("data")

    def _reserve_transaction(self) -> str:
        transaction = self._new_transaction()
        while transaction in self._in_flight:
            transaction = self._new_transaction()
        self._in_flight.add(transaction)
        return transaction

    # =========================================================================
    # Long-poll
    # =========================================================================

    async def _status(self) -> Event:
        """Issue one long-poll GET and return the event it delivers.

        Poll replies carry pushed events, so only the status and body shape
        are checked.
        """
        self._require_connected()
        uri = f"{self._uri}/{self._id}?rid={int(time.time() * 1000)}"

        logger.debug(f"Polling {uri}")
        response = await self._transport.request("GET", uri)
        logger.debug(f"Poll reply: {response.status_code} {_preview(response.content)}")

        _check_status(response)
        body = _decode(response)
        try:
            event = Event.model_validate(body)
        except ValidationError as e:
            raise DecodeError(response.content, str(e)) from e
        logger.debug(f"Polled event janus={event.janus} sender={event.sender}")
        return event

    async def events(self, max_events: int | None = None) -> AsyncIterator[Event]:
        """Long-poll repeatedly, yielding each event.

        The next GET is issued as soon as the previous event has been
        consumed. Stops after ``max_events`` polls when given; any error
        ends the iteration.
        """
        self._require_connected()
        polled = 0
        while max_events is None or polled < max_events:
            event = await self._status()
            polled += 1
            yield event

    def _require_connected(self) -> None:
        if self._id is None:
            raise SessionNotConnectedError("session is not connected; call connect() first")

    # =========================================================================
    # Resource management
    # =========================================================================

    async def aclose(self) -> None:
        """Close the transport if this session created it."""
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> JanusSession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def _preview(content: bytes, limit: int = BODY_LOG_LIMIT) -> str:
    text = content[:limit].decode("utf-8", errors="replace")
    return text + "..." if len(content) > limit else text


def _check_status(response: TransportResponse) -> None:
    if response.status_code != 200:
        raise TransportError(response.status_code)


def _decode(response: TransportResponse) -> dict[str, Any]:
    try:
        body = json.loads(response.content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(response.content, str(e)) from e
    if not isinstance(body, dict):
        raise DecodeError(response.content, f"expected a JSON object, got {type(body).__name__}")
    return body
