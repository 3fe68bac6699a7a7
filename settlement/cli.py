"""Command line entry points for operators: ``settlement diagnose`` and ``settlement reconcile``."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

import click
import orjson

from . import __version__
from .config import get_config_path, load_server_config
from .errors import PersistenceReadFailure, SettlementError
from .reconcile import DiagnosticsService, ReconciliationSweep
from .storage import build_storage
from .validation.validator import get_schema_registry

logger = logging.getLogger(__name__)


def _coerce_id(value: str):
    return int(value) if value.isdigit() else value


def _dump(payload) -> str:
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode()


async def _close(storage) -> None:
    close = getattr(storage, "close", None)
    if close is not None:
        await close()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Server YAML config (defaults to SETTLEMENT_CONFIG_PATH or the bundled file)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_path, debug):
    """Settle closed auctions and repair drifted statuses."""
    config = load_server_config(config_path or get_config_path())
    level = logging.DEBUG if debug else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(name)s] %(levelname)s %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("auction_id")
@click.pass_context
def diagnose(ctx, auction_id):
    """Dump one auction, its bids and the settlement decision."""
    config = ctx.obj["config"]

    async def _diagnose():
        storage = build_storage(config)
        service = DiagnosticsService.from_config(config, storage, get_schema_registry())
        try:
            return await service.diagnose(_coerce_id(auction_id))
        finally:
            await _close(storage)

    try:
        result = asyncio.run(_diagnose())
    except KeyError:
        raise click.ClickException(f"auction {auction_id} not found")
    except SettlementError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}")
    click.echo(_dump(result))


@cli.command()
@click.option("--dry-run", is_flag=True, help="Report what would change without writing")
@click.option(
    "--auction-id",
    "auction_ids",
    multiple=True,
    help="Limit the sweep to these auction ids (repeatable)",
)
@click.option("--concurrency", type=click.IntRange(min=1), default=None)
@click.pass_context
def reconcile(ctx, dry_run, auction_ids, concurrency):
    """Recompute every closed auction and correct drifted statuses."""
    config = ctx.obj["config"]

    async def _reconcile():
        storage = build_storage(config)
        sweep = ReconciliationSweep.from_config(
            config, storage, get_schema_registry(), concurrency=concurrency
        )
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, cancel_event.set)
            except (NotImplementedError, RuntimeError):
                logger.debug("signal %s cannot be handled on this platform", signum)
        try:
            return await sweep.run(
                cancel_event=cancel_event,
                auction_ids=[_coerce_id(value) for value in auction_ids] or None,
                dry_run=dry_run,
            )
        finally:
            await _close(storage)

    try:
        report = asyncio.run(_reconcile())
    except PersistenceReadFailure as exc:
        raise click.ClickException(f"could not list candidate auctions: {exc}")
    counts = report.counts()
    click.echo(
        "inspected={inspected} corrected={corrected} would_correct={would_correct} "
        "unchanged={unchanged} errored={errored} listings_repaired={listings_repaired}".format(
            **counts
        )
    )
    if report.cancelled:
        click.echo("sweep cancelled before all auctions were inspected", err=True)
    click.echo(report.render_json(indent=True))


if __name__ == "__main__":
    cli()
