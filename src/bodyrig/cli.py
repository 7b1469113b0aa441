# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Command line interface for the body rig service."""

import asyncio
import sys

import click
from loguru import logger

from bodyrig.device.client_identity import ClientIdentityStore
from bodyrig.settings import get_settings


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@click.group()
@click.option("--log-level", default=None, help="Log level, defaults to LOG_LEVEL from the environment.")
def cli(log_level: str | None) -> None:
    """Body Rig CLI"""
    configure_logging(log_level or get_settings().log_level)


@cli.command()
@click.option("--host", default=None, help="Bind address.")
@click.option("--port", default=None, type=int, help="HTTP port.")
def serve(host: str | None, port: int | None) -> None:
    """Run the session server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("bodyrig.main:app", host=host or settings.host, port=port or settings.port)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address.")  # noqa: S104
@click.option("--port", default=None, type=int, help="Websocket port, defaults to DEVICE_PORT.")
@click.option("--frames", default=3, show_default=True, help="Live frames streamed per step.")
@click.option("--interval", default=0.3, show_default=True, help="Seconds between live frames.")
def simulate(host: str, port: int | None, frames: int, interval: float) -> None:
    """Run a simulated measurement rig."""
    from bodyrig.device.simulator import RigSimulator

    simulator = RigSimulator(
        host=host,
        port=port or get_settings().device_port,
        live_frames=frames,
        frame_interval_s=interval,
    )
    try:
        asyncio.run(simulator.serve_forever())
    except KeyboardInterrupt:
        click.echo("Simulator stopped")
    except OSError as e:
        click.echo(f"✗ Could not start simulator: {e}")
        sys.exit(1)


@cli.command()
def identity() -> None:
    """Print the client identity announced to the rig."""
    settings = get_settings()
    click.echo(ClientIdentityStore(settings.client_identity_path).get_or_create())


if __name__ == "__main__":
    cli()
