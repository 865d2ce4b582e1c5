"""Click entry point for the ``kubealert`` command."""

from __future__ import annotations

import asyncio

import click

from kubealert.config import load_config
from kubealert.models.resources import ResourceKind


@click.group()
@click.version_option(package_name="kubealert")
def cli() -> None:
    """Watch Kubernetes resources and turn lifecycle changes into alerts."""


@cli.command()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override KUBEALERT_LOG_LEVEL.",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"]),
    default=None,
    help="Override KUBEALERT_LOG_FORMAT.",
)
@click.option("--workers", type=click.IntRange(1, 16), default=None, help="Workers per controller.")
@click.option("--namespace", default=None, help="Watch a single namespace instead of all.")
def run(log_level: str | None, log_format: str | None, workers: int | None, namespace: str | None) -> None:
    """Run the controllers until SIGTERM/SIGINT."""
    from kubealert.app import main

    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if log_level is not None:
        config.log.level = log_level
    if log_format is not None:
        config.log.format = log_format
    if workers is not None:
        config.controller.workers = workers
    if namespace is not None:
        config.watch.namespace = namespace
    asyncio.run(main(config))


@cli.command()
def kinds() -> None:
    """List the resource kinds that can be watched."""
    for kind in ResourceKind:
        scope = "cluster" if kind.cluster_scoped else "namespaced"
        click.echo(f"{kind.value:<24}{kind.display_name:<24}{scope}")
