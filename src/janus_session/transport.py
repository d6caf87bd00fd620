"""HTTP transport used by the session layer.

The session layer only needs a status code and the complete response body
for each request, so transports expose a single ``request`` coroutine.

Architecture:
- ClientTransport is the PROTOCOL (interface) the session layer depends on
- HTTPClientTransport talks to a real gateway through httpx
- MockClientTransport answers in-memory, for tests and offline use
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class ClientTransportConfig:
    """Configuration for client transports."""

    # Applies to connect/write/pool. Reads are unbounded so the gateway can
    # hold long-poll requests open.
    timeout: float = 30.0

    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TransportResponse:
    """Status code plus the fully collected response body."""

    status_code: int
    content: bytes = b""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


@runtime_checkable
class ClientTransport(Protocol):
    """Protocol for session layer transports.

    All transports must implement:
    - request: Issue one HTTP request and return status + full body
    - aclose: Release any held connections
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        """Issue a request and wait for the complete response.

        Raises:
            TransportError: If no response could be obtained
        """
        ...

    async def aclose(self) -> None:
        """Close the transport."""
        ...


class BaseClientTransport(ABC):
    """Base class for client transports with common functionality."""

    def __init__(self, config: ClientTransportConfig):
        self.config = config
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        """Issue a request through the implementation."""
        if self._closed:
            raise RuntimeError(f"{self.__class__.__name__} is closed")

        merged = {**self.config.headers, **(headers or {})}
        logger.debug(f"{method} {url}")
        response = await self._do_request(method, url, content=content, headers=merged)
        logger.debug(f"{method} {url} -> {response.status_code} ({len(response.content)} bytes)")
        return response

    async def aclose(self) -> None:
        """Close the transport; further requests fail."""
        if self._closed:
            return
        self._closed = True
        await self._do_close()

    @abstractmethod
    async def _do_request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None,
        headers: dict[str, str],
    ) -> TransportResponse:
        """Implementation-specific request logic."""
        ...

    async def _do_close(self) -> None:
        """Implementation-specific close logic."""
        return None

    async def __aenter__(self) -> BaseClientTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


class HTTPClientTransport(BaseClientTransport):
    """Transport over HTTP using httpx.

    The response body is streamed and collected chunk by chunk before the
    response is handed back, so long-poll replies are read to completion.
    """

    def __init__(
        self,
        config: ClientTransportConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config or ClientTransportConfig())
        self._owns_client = client is None
        self._http_client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout, read=None),
        )

    async def _do_request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None,
        headers: dict[str, str],
    ) -> TransportResponse:
        try:
            async with self._http_client.stream(
                method, url, content=content, headers=headers
            ) as response:
                chunks = [chunk async for chunk in response.aiter_bytes()]
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(None, str(e)) from e

        return TransportResponse(status_code=response.status_code, content=b"".join(chunks))

    async def _do_close(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()


@dataclass
class RecordedRequest:
    """A request seen by MockClientTransport."""

    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None = None

    @property
    def json(self) -> Any:
        """The request body decoded as JSON (None without a body)."""
        if self.content is None:
            return None
        return json.loads(self.content)

    @property
    def path(self) -> str:
        """URL path without the query string."""
        return httpx.URL(self.url).path

    @property
    def params(self) -> dict[str, str]:
        """Query string parameters."""
        return dict(httpx.URL(self.url).params)


Handler = Callable[[RecordedRequest], TransportResponse]


def json_response(body: Any, status_code: int = 200) -> TransportResponse:
    """Build a response with a JSON body."""
    return TransportResponse(status_code=status_code, content=json.dumps(body).encode("utf-8"))


def echo(janus: str = "success", data: dict[str, Any] | None = None) -> Handler:
    """Handler that replies with ``janus`` and echoes the request's transaction."""

    def handler(request: RecordedRequest) -> TransportResponse:
        body: dict[str, Any] = {"janus": janus, "transaction": request.json.get("transaction")}
        if data is not None:
            body["data"] = data
        return json_response(body)

    return handler


class MockClientTransport(BaseClientTransport):
    """Mock transport for testing.

    Records every request and answers from registered handlers.
    No actual I/O - everything is in-memory.

    Usage:
        transport = MockClientTransport()
        transport.on("POST", "http://gw/janus", echo(data={"id": 42}))

        session = JanusSession(transport=transport)
        await session.connect("http://gw/janus")

        assert transport.recorded_requests[0].json["janus"] == "create"

    Handlers are matched by method and exact URL (ignoring the query
    string); the most recently registered match wins. Requests with no
    matching handler get a 404.
    """

    def __init__(self) -> None:
        super().__init__(ClientTransportConfig())
        self._handlers: list[tuple[str, str, Handler]] = []
        self._recorded_requests: list[RecordedRequest] = []

    @property
    def recorded_requests(self) -> list[RecordedRequest]:
        """Get all requests sent through this transport."""
        return self._recorded_requests.copy()

    def on(self, method: str, url: str, handler: Handler | TransportResponse) -> None:
        """Register a handler (or a fixed response) for ``method`` + ``url``."""
        if isinstance(handler, TransportResponse):
            fixed = handler
            handler = lambda request: fixed  # noqa: E731
        self._handlers.append((method.upper(), url, handler))

    def clear(self) -> None:
        """Clear recorded requests and handlers."""
        self._recorded_requests.clear()
        self._handlers.clear()

    async def _do_request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None,
        headers: dict[str, str],
    ) -> TransportResponse:
        recorded = RecordedRequest(method=method, url=url, headers=headers, content=content)
        self._recorded_requests.append(recorded)

        target = url.split("?", 1)[0]
        for handler_method, handler_url, handler in reversed(self._handlers):
            if handler_method == method.upper() and handler_url == target:
                return handler(recorded)
        return TransportResponse(status_code=404, content=b"not found")


# Factory functions


def create_http_transport(
    timeout: float = 30.0,
    headers: dict[str, str] | None = None,
) -> HTTPClientTransport:
    """Create an HTTP transport.

    Args:
        timeout: Connect/write timeout; reads are unbounded for long-polls
        headers: Extra headers sent with every request

    Returns:
        HTTPClientTransport backed by a fresh httpx.AsyncClient
    """
    config = ClientTransportConfig(timeout=timeout, headers=dict(headers or {}))
    return HTTPClientTransport(config)


def create_mock_transport() -> MockClientTransport:
    """Create a mock transport for testing."""
    return MockClientTransport()
