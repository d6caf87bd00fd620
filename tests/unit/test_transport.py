"""Tests for client transports."""

from __future__ import annotations

import json

import httpx
import pytest

from janus_session.errors import TransportError
from janus_session.transport import (
    ClientTransport,
    ClientTransportConfig,
    HTTPClientTransport,
    MockClientTransport,
    TransportResponse,
    create_http_transport,
    create_mock_transport,
    echo,
    json_response,
)

# =============================================================================
# HTTPClientTransport
# =============================================================================


def _http_transport(handler, headers: dict[str, str] | None = None) -> HTTPClientTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HTTPClientTransport(ClientTransportConfig(headers=headers or {}), client=client)


class TestHTTPClientTransport:
    """Tests for the httpx-backed transport."""

    @pytest.mark.asyncio
    async def test_post_sends_body_and_headers(self) -> None:
        """POST forwards body and headers to httpx."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"janus": "success"})

        transport = _http_transport(handler)
        response = await transport.request(
            "POST",
            "http://gw/janus",
            content=b'{"janus": "create"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert json.loads(response.content) == {"janus": "success"}
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "http://gw/janus"
        assert seen[0].headers["content-type"] == "application/json"
        assert seen[0].content == b'{"janus": "create"}'

    @pytest.mark.asyncio
    async def test_collects_full_body(self) -> None:
        """The streamed body is collected completely."""
        body = b"x" * 100_000

        transport = _http_transport(lambda request: httpx.Response(200, content=body))
        response = await transport.request("GET", "http://gw/janus/1?rid=1")

        assert response.content == body

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self) -> None:
        """Status interpretation belongs to the session layer."""
        transport = _http_transport(lambda request: httpx.Response(500, text="boom"))
        response = await transport.request("GET", "http://gw/janus/1")

        assert response.status_code == 500
        assert response.text == "boom"

    @pytest.mark.asyncio
    async def test_default_headers_merged(self) -> None:
        """Config headers are sent; per-request headers override them."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = _http_transport(handler, headers={"X-Api": "k", "Content-Type": "text/plain"})
        await transport.request("POST", "http://gw", headers={"Content-Type": "application/json"})

        assert seen[0].headers["x-api"] == "k"
        assert seen[0].headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self) -> None:
        """httpx errors become TransportError without a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = _http_transport(handler)
        with pytest.raises(TransportError) as exc_info:
            await transport.request("POST", "http://gw/janus")

        assert exc_info.value.status_code is None
        assert "connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_invalid_url_becomes_transport_error(self) -> None:
        """A malformed URL is reported as TransportError."""
        transport = _http_transport(lambda request: httpx.Response(200))

        with pytest.raises(TransportError) as exc_info:
            await transport.request("POST", "http://[::1/janus")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)

    @pytest.mark.asyncio
    async def test_stream_error_becomes_transport_error(self) -> None:
        """Errors while reading the body stream are reported as TransportError."""

        class BrokenStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                raise httpx.StreamConsumed()
                yield b""

        transport = _http_transport(lambda request: httpx.Response(200, stream=BrokenStream()))

        with pytest.raises(TransportError) as exc_info:
            await transport.request("GET", "http://gw/janus/1")

        assert isinstance(exc_info.value.__cause__, httpx.StreamError)

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self) -> None:
        """A caller-supplied httpx client is left open."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HTTPClientTransport(client=client)

        await transport.aclose()

        assert transport.is_closed is True
        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self) -> None:
        """The transport closes an httpx client it created."""
        transport = create_http_transport(timeout=5.0)

        async with transport:
            pass

        assert transport.is_closed is True
        assert transport._http_client.is_closed is True

    @pytest.mark.asyncio
    async def test_request_after_close_fails(self) -> None:
        """Requests on a closed transport fail."""
        transport = _http_transport(lambda request: httpx.Response(200))
        await transport.aclose()

        with pytest.raises(RuntimeError):
            await transport.request("GET", "http://gw")

    def test_read_timeout_disabled(self) -> None:
        """Long-poll reads must not time out on the client side."""
        transport = create_http_transport(timeout=12.0)

        timeout = transport._http_client.timeout
        assert timeout.read is None
        assert timeout.connect == 12.0


# =============================================================================
# MockClientTransport
# =============================================================================


class TestMockClientTransport:
    """Tests for the in-memory transport."""

    def test_satisfies_protocol(self) -> None:
        """Both transports satisfy ClientTransport."""
        assert isinstance(create_mock_transport(), ClientTransport)
        assert isinstance(create_http_transport(), ClientTransport)

    @pytest.mark.asyncio
    async def test_records_requests(self) -> None:
        """Requests are recorded with their decoded body."""
        transport = MockClientTransport()
        transport.on("POST", "http://gw/janus", json_response({"ok": True}))

        await transport.request("POST", "http://gw/janus", content=b'{"a": 1}')

        recorded = transport.recorded_requests
        assert len(recorded) == 1
        assert recorded[0].method == "POST"
        assert recorded[0].json == {"a": 1}

    @pytest.mark.asyncio
    async def test_unmatched_request_gets_404(self) -> None:
        """Requests without a handler get a 404."""
        transport = MockClientTransport()

        response = await transport.request("GET", "http://gw/nothing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_matching_ignores_query_string(self) -> None:
        """Handlers match on the URL without query string."""
        transport = MockClientTransport()
        transport.on("GET", "http://gw/janus/1", json_response({"janus": "event"}))

        response = await transport.request("GET", "http://gw/janus/1?rid=123")

        assert response.status_code == 200
        recorded = transport.recorded_requests[0]
        assert recorded.path == "/janus/1"
        assert recorded.params == {"rid": "123"}
        assert recorded.json is None

    @pytest.mark.asyncio
    async def test_latest_handler_wins(self) -> None:
        """The most recently registered handler answers."""
        transport = MockClientTransport()
        transport.on("GET", "http://gw", TransportResponse(200, b"first"))
        transport.on("GET", "http://gw", TransportResponse(200, b"second"))

        response = await transport.request("GET", "http://gw")

        assert response.content == b"second"

    @pytest.mark.asyncio
    async def test_echo_handler_returns_transaction(self) -> None:
        """echo() replies with the request's transaction."""
        transport = MockClientTransport()
        transport.on("POST", "http://gw", echo("ack"))

        response = await transport.request(
            "POST", "http://gw", content=json.dumps({"transaction": "tx-7"}).encode()
        )

        assert json.loads(response.content) == {"janus": "ack", "transaction": "tx-7"}

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        """clear() drops recorded requests and handlers."""
        transport = MockClientTransport()
        transport.on("GET", "http://gw", TransportResponse(200))
        await transport.request("GET", "http://gw")

        transport.clear()

        assert transport.recorded_requests == []
        assert (await transport.request("GET", "http://gw")).status_code == 404
