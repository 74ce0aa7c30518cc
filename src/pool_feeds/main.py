"""CLI entrypoint for pool-feeds."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from .checks.interval import format_time_remaining
from .checks.preflight import PreflightError
from .logger import setup_logging
from .price_math import PriceComputationError, compute_price, format_price
from .scheduler import SchedulerHalted, UpdateScheduler
from .settings import FeedsSettings, Network
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Attestation-gated price feeds for concentrated-liquidity pools.",
)


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("pool_feeds")


def _load_settings(
    config_path: Path | None,
    init_kwargs: dict[str, Any],
) -> FeedsSettings:
    if config_path:
        os.environ["POOL_FEEDS_CONFIG"] = str(config_path)
    try:
        return FeedsSettings(**init_kwargs)
    except ValueError as e:
        typer.echo(f"Invalid configuration:\n{e}", err=True)
        raise typer.Exit(code=1) from e


ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML config file (can include [pool_feeds] table).",
    ),
]
NetworkOption = Annotated[
    Network | None,
    typer.Option("--network", "-n", help="Network to use (flare or coston2)."),
]
RpcOption = Annotated[
    str | None,
    typer.Option("--rpc-url", help="RPC endpoint; overrides the network default."),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
]


def _common_kwargs(
    network: Network | None, rpc_url: str | None, log_level: str | None
) -> dict[str, Any]:
    init_kwargs: dict[str, Any] = {}
    if network is not None:
        init_kwargs["network"] = network
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()
    return init_kwargs


async def _run_scheduler(state: AppState, max_cycles: int | None) -> None:
    from .pipeline.preflight import run_preflight
    from .pipeline.services import build_services

    services = build_services(state.settings)
    feeds = state.settings.feed_configs()
    state.logger.info(
        "Operator %s on %s (chain %d)",
        services.ledger.address,
        state.settings.network.value,
        state.settings.chain_id,
    )
    await run_preflight(state, services, feeds)
    scheduler = UpdateScheduler(state, services, feeds)
    await scheduler.run(max_cycles=max_cycles)


@app.command("run")
def run_command(
    config_path: ConfigOption = None,
    network: NetworkOption = None,
    rpc_url: RpcOption = None,
    log_level: LogLevelOption = None,
    max_cycles: Annotated[
        int | None,
        typer.Option("--max-cycles", help="Stop after this many scheduler cycles."),
    ] = None,
    check_interval: Annotated[
        float | None,
        typer.Option("--check-interval", help="Seconds to wait between cycles."),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Run the record-then-attest scheduler over every configured feed."""
    init_kwargs = _common_kwargs(network, rpc_url, log_level)
    if max_cycles is not None:
        init_kwargs["max_cycles"] = max_cycles
    if check_interval is not None:
        init_kwargs["check_interval_seconds"] = check_interval

    settings = _load_settings(config_path, init_kwargs)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    setup_logging(settings.log_level)
    state = AppState(settings=settings, logger=_build_logger())

    if not settings.feeds:
        raise typer.BadParameter("at least one [[feeds]] entry must be configured")
    if settings.price_recorder_address is None:
        raise typer.BadParameter(
            "price_recorder_address must be configured",
            param_hint=["POOL_FEEDS_PRICE_RECORDER_ADDRESS"],
        )
    if settings.private_key is None:
        raise typer.BadParameter(
            "private_key is required to send transactions.",
            param_hint=["POOL_FEEDS_PRIVATE_KEY"],
        )

    try:
        asyncio.run(_run_scheduler(state, settings.max_cycles))
    except (PreflightError, SchedulerHalted) as e:
        state.logger.error("Stopped: %s", e)
        raise typer.Exit(code=1) from e
    except KeyboardInterrupt:
        state.logger.info("Interrupted, shutting down")


@app.command("price")
def price_command(
    sqrt_price_x96: Annotated[int, typer.Argument(help="Pool sqrtPriceX96 value.")],
    decimals0: Annotated[int, typer.Option("--decimals0", help="token0 decimals.")] = 18,
    decimals1: Annotated[int, typer.Option("--decimals1", help="token1 decimals.")] = 18,
    invert: Annotated[
        bool, typer.Option("--invert/--no-invert", help="Report token0 per token1.")
    ] = False,
):
    """Compute the 6-decimal feed price for a sqrtPriceX96 value (offline)."""
    try:
        value = compute_price(sqrt_price_x96, decimals0, decimals1, invert)
    except PriceComputationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"{value} ({format_price(value)})")


async def _collect_status(settings: FeedsSettings) -> list[dict[str, Any]]:
    from .pipeline.services import build_services

    services = build_services(settings, read_only=True)
    rows = []
    for feed in settings.feed_configs():
        reading = await services.feed_client(feed.alias).read_state()
        can_update = await services.recorder.can_update(feed.pool_address)
        wait = 0 if can_update else await services.recorder.time_until_next_update(
            feed.pool_address
        )
        rows.append(
            {
                "alias": feed.alias,
                "value": reading.latest_value,
                "timestamp": reading.last_update_timestamp,
                "updates": reading.update_count,
                "accepting": reading.accepting_updates,
                "next_update": "now" if can_update else format_time_remaining(wait),
            }
        )
    return rows


@app.command("status")
def status_command(
    config_path: ConfigOption = None,
    network: NetworkOption = None,
    rpc_url: RpcOption = None,
    log_level: LogLevelOption = None,
):
    """Show each feed's committed value and recorder eligibility."""
    settings = _load_settings(config_path, _common_kwargs(network, rpc_url, log_level))
    setup_logging(settings.log_level)
    if settings.price_recorder_address is None:
        raise typer.BadParameter("price_recorder_address must be configured")

    rows = asyncio.run(_collect_status(settings))

    table = Table(title=f"Feeds on {settings.network.value}")
    table.add_column("Feed", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="green")
    table.add_column("Updated At", justify="right")
    table.add_column("Updates", justify="right")
    table.add_column("Accepting", justify="center")
    table.add_column("Next Recording", justify="right", style="yellow")
    for row in rows:
        table.add_row(
            row["alias"],
            format_price(row["value"]),
            str(row["timestamp"]),
            str(row["updates"]),
            "yes" if row["accepting"] else "[red]no[/]",
            row["next_update"],
        )
    Console().print(table)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
