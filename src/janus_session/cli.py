"""Janus Session CLI.

Usage:
    janus-session create --url http://localhost:8088/janus
    janus-session send echotest --body '{"audio": true}'
    janus-session send janus.plugin.videoroom --body '{"request": "list"}' --polls 3

The gateway URL may also be given through JANUS_URL.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .errors import JanusError
from .session import JanusSession
from .transport import ClientTransport, create_http_transport


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.option("--timeout", default=30.0, help="Connect/write timeout in seconds")
@click.pass_context
def main(ctx: click.Context, log_level: str, timeout: float) -> None:
    """Janus Session - talk to a gateway over HTTP long-poll."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("transport_factory", lambda: create_http_transport(timeout=timeout))


@main.command()
@click.option("--url", envvar="JANUS_URL", required=True, help="Gateway base URL")
@click.pass_context
def create(ctx: click.Context, url: str) -> None:
    """Create a session and print its id."""

    async def run() -> Any:
        async with _session(ctx) as session:
            await session.connect(url)
            return session.id

    session_id = _run(run())
    click.echo(session_id)


@main.command()
@click.argument("plugin")
@click.option("--url", envvar="JANUS_URL", required=True, help="Gateway base URL")
@click.option("--body", "body_json", default="{}", help="Message body as JSON")
@click.option("--polls", default=1, type=click.IntRange(min=1), help="Events to print")
@click.pass_context
def send(ctx: click.Context, plugin: str, url: str, body_json: str, polls: int) -> None:
    """Attach PLUGIN, send it a message and print the resulting events."""
    try:
        body = json.loads(body_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--body") from e

    async def run() -> None:
        async with _session(ctx) as session:
            await session.connect(url)
            handle = await session.activate(plugin)
            event = await handle.send(body)
            click.echo(_format(event))
            if polls > 1:
                async for event in session.events(max_events=polls - 1):
                    click.echo(_format(event))

    _run(run())


def _session(ctx: click.Context) -> JanusSession:
    transport: ClientTransport = ctx.obj["transport_factory"]()
    return JanusSession(transport, owns_transport=True)


def _format(event: Any) -> str:
    return json.dumps(event.model_dump(exclude_none=True), indent=2)


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except JanusError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
