"""Rich console formatter for scheduler statistics."""

from __future__ import annotations

import time

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from ..constants import WEI_PER_NATIVE
from ..price_math import format_price
from .stats import SchedulerStats


def _format_native(wei: int, symbol: str) -> str:
    return f"{wei / WEI_PER_NATIVE:.6f} {symbol}"


def _format_age(timestamp: float | None) -> str:
    if timestamp is None:
        return "[dim]never[/]"
    return f"{int(time.time() - timestamp)}s ago"


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    return f"{hours}h {mins}m {secs}s"


def build_stats_panel(stats: SchedulerStats, symbol: str = "FLR", title: str = "Stats") -> Panel:
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Key", style="dim")
    summary.add_column("Value", style="cyan")
    summary.add_row("Uptime", _format_duration(stats.uptime_seconds))
    summary.add_row("Cycles", str(stats.cycles))
    summary.add_row(
        "Recordings",
        f"{stats.recordings_ok} ok / {stats.recordings_failed} failed "
        f"({stats.consecutive_recording_failures} consecutive)",
    )
    summary.add_row(
        "Attestations",
        f"{stats.attestations_ok} ok / {stats.attestations_failed} failed",
    )
    summary.add_row("Skipped", str(stats.skipped))
    summary.add_row("Avg attestation", f"{stats.average_attestation_seconds:.0f}s")
    summary.add_row("Gas used", f"{stats.gas_used:,}")
    summary.add_row("Gas cost", _format_native(stats.gas_cost_wei, symbol))
    summary.add_row("Attestation fees", _format_native(stats.attestation_fees_wei, symbol))

    feeds = Table(expand=True, show_lines=False)
    feeds.add_column("Feed", style="cyan", no_wrap=True)
    feeds.add_column("Recordings", justify="right")
    feeds.add_column("Attestations", justify="right", style="green")
    feeds.add_column("Failures", justify="right", style="red")
    feeds.add_column("Last Recorded", justify="right", style="yellow")
    feeds.add_column("Last Committed", justify="right", style="yellow")
    feeds.add_column("Last Attested", justify="right", style="dim")

    for alias in sorted(stats.feeds):
        feed = stats.feeds[alias]
        feeds.add_row(
            alias,
            str(feed.recordings),
            str(feed.attestations),
            str(feed.attestation_failures),
            format_price(feed.last_recorded_price) if feed.last_recorded_price else "-",
            format_price(feed.last_committed_price) if feed.last_committed_price else "-",
            _format_age(feed.last_attestation_at),
        )

    return Panel(Group(summary, feeds), title=f"[bold]{title}[/]", border_style="blue")


def print_stats(
    stats: SchedulerStats,
    symbol: str = "FLR",
    title: str = "Stats",
    console: Console | None = None,
) -> None:
    """Print the statistics panel to stdout."""
    (console or Console()).print(build_stats_panel(stats, symbol, title))
