"""Pocketbook CLI — run the realtime server and poke at it.

Usage:
    pocketbook serve                                   # Start uvicorn
    pocketbook notify user-1 expense:created -d '{"id": "e1"}'
    pocketbook stats                                   # Registry + dispatcher counters
    pocketbook token user-1                            # Mint a signed socket token
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from pocketbook import __version__
from pocketbook.events.types import EventName

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3100"


def _api_url() -> str:
    return os.environ.get("POCKETBOOK_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the realtime backend."""
    headers = {}
    key = os.environ.get("POCKETBOOK_INTERNAL_API_KEY")
    if key:
        headers["x-api-key"] = key
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="pocketbook")
def main():
    """Pocketbook — live expense/category notifications over WebSocket."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: POCKETBOOK_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: POCKETBOOK_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API + WebSocket server with uvicorn."""
    import uvicorn

    from pocketbook.config import settings

    uvicorn.run(
        "pocketbook.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("user_id")
@click.argument("event", type=click.Choice([e.value for e in EventName]))
@click.option("--data", "-d", default="null", help="JSON payload sent to clients")
def notify(user_id: str, event: str, data: str):
    """Push EVENT to every live connection of USER_ID."""
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        _fail(f"--data is not valid JSON: {e}")
    _run(_notify_impl(user_id, event, payload))


async def _notify_impl(user_id: str, event: str, payload):
    async with _client() as c:
        r = await c.post(
            "/api/v1/notify",
            json={"user_id": user_id, "event": event, "data": payload},
        )
        if r.status_code >= 400:
            _fail(f"{r.status_code} {r.text}")
        delivered = r.json()["delivered"]

    color = "green" if delivered else "yellow"
    click.secho(f"{event} → {user_id}: delivered to {delivered} connection(s)", fg=color)


@main.command()
def stats():
    """Show registry size and dispatcher counters."""
    _run(_stats_impl())


async def _stats_impl():
    async with _client() as c:
        r = await c.get("/api/v1/realtime/stats")
        if r.status_code >= 400:
            _fail(f"{r.status_code} {r.text}")
        data = r.json()

    registry = data["registry"]
    click.secho(f"Backplane: {data['backplane']}", bold=True)
    click.echo(f"  users online      {registry['users']}")
    click.echo(f"  connections       {registry['connections']}")
    click.echo(f"  channels          {data['channels']}")
    click.secho("Dispatcher:", bold=True)
    for key, value in data["dispatcher"].items():
        click.echo(f"  {key:17s} {value}")


@main.command()
@click.argument("user_id")
@click.option("--expires", type=int, default=None, help="Lifetime in minutes")
def token(user_id: str, expires: Optional[int]):
    """Mint a signed socket token for USER_ID (uses POCKETBOOK_JWT_SECRET)."""
    from pocketbook.auth.jwt import create_access_token

    click.echo(create_access_token(user_id, expires_minutes=expires))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
