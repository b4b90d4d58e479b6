"""Warden CLI — run the API server or the expiry reaper.

Usage:
    warden serve                 # API server (uvicorn), reaper included
    warden reap                  # Reaper only, every WARDEN_REAPER_INTERVAL_SECONDS
    warden reap --once           # One pass of all three sweeps, then exit
    warden init-db               # Create tables directly (dev / SQLite only)

Running the reaper as its own process lets several API replicas run
with WARDEN_REAPER_ENABLED=false while one process does the sweeping.
"""

from __future__ import annotations

import asyncio
import json
import signal

import click

from warden.config import get_settings
from warden.db.engine import build_engine, build_session_factory, create_schema
from warden.services.reaper import ReaperWorker
from warden.services.wiring import build_services, sql_stores


@click.group()
def cli() -> None:
    """Warden authentication service."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: WARDEN_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: WARDEN_PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "warden.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
    )


async def _reap(once: bool, interval: float | None) -> dict[str, int] | None:
    settings = get_settings()
    engine = build_engine(settings.database_url, echo=settings.debug)
    services = build_services(settings, sql_stores(build_session_factory(engine)))
    worker = ReaperWorker(
        services.reaper, interval=interval or settings.reaper_interval_seconds
    )

    try:
        if once:
            return await worker.run_once()

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        task = asyncio.create_task(worker.run_loop())
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, task.cancel)
        try:
            await task
        except asyncio.CancelledError:
            worker.stop()
        return None
    finally:
        await engine.dispose()


@cli.command()
@click.option("--once", is_flag=True, help="Run every sweep once and exit")
@click.option("--interval", type=float, default=None, help="Seconds between passes")
def reap(once: bool, interval: float | None) -> None:
    """Purge expired challenges, spent refresh tokens and unconfirmed users."""
    counts = asyncio.run(_reap(once, interval))
    if counts is not None:
        click.echo(json.dumps(counts))


@cli.command("init-db")
def init_db() -> None:
    """Create all tables from the ORM models."""

    async def _init() -> None:
        settings = get_settings()
        engine = build_engine(settings.database_url)
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(_init())
    click.echo("Schema created")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
