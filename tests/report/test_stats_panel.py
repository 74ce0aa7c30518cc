from io import StringIO

from rich.console import Console

from pool_feeds.report.formatter import print_stats
from pool_feeds.report.stats import SchedulerStats


def _stats() -> SchedulerStats:
    stats = SchedulerStats(
        cycles=12,
        recordings_ok=9,
        recordings_failed=1,
        attestations_ok=8,
        attestations_failed=1,
        skipped=2,
        gas_used=2_100_000,
        gas_cost_wei=5 * 10**16,
        attestation_fees_wei=4 * 10**18,
        attestation_seconds=1_440.0,
    )
    feed = stats.feed("WFLR_USDC")
    feed.recordings = 9
    feed.attestations = 8
    feed.last_recorded_price = 18_734
    feed.last_committed_price = 18_700
    return stats


def test_feed_stats_are_created_on_demand():
    stats = SchedulerStats()
    assert stats.feed("A") is stats.feed("A")
    assert list(stats.feeds) == ["A"]


def test_average_attestation_time():
    assert SchedulerStats().average_attestation_seconds == 0.0
    assert _stats().average_attestation_seconds == 180.0


def test_print_stats_renders_summary_and_feeds():
    buffer = StringIO()
    console = Console(file=buffer, width=140, color_system=None)

    print_stats(_stats(), symbol="C2FLR", title="Final Stats", console=console)

    output = buffer.getvalue()
    assert "Final Stats" in output
    assert "9 ok / 1 failed" in output
    assert "4.000000 C2FLR" in output
    assert "WFLR_USDC" in output
    assert "0.018734" in output
    assert "never" in output
