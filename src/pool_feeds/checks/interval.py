"""Per-feed minimum update interval, as enforced by the recorder."""

from __future__ import annotations

import logging

from ..clients.price_recorder import PriceRecorderClient
from ..domain import FeedConfig
from .base import BaseCheck, CheckResult

logger = logging.getLogger(__name__)


def format_time_remaining(seconds: int) -> str:
    """Format seconds into human-readable time.

    Args:
        seconds: Number of seconds to format

    Returns:
        Formatted time string (e.g., "2h 15m", "45m 30s", "30s")
    """
    if seconds >= 3600:
        hours = seconds // 3600
        mins = (seconds % 3600) // 60
        return f"{hours}h {mins}m"
    elif seconds >= 60:
        mins = seconds // 60
        secs = seconds % 60
        return f"{mins}m {secs}s"
    else:
        return f"{seconds}s"


class UpdateIntervalCheck(BaseCheck):
    """Passes when the recorder would accept a new recording for the feed's pool."""

    def __init__(self, recorder: PriceRecorderClient, feed: FeedConfig):
        self.recorder = recorder
        self.feed = feed

    @property
    def name(self) -> str:
        return "Update Interval Check"

    async def run_check(self) -> CheckResult:
        if await self.recorder.can_update(self.feed.pool_address):
            return CheckResult(passed=True, message="Update interval elapsed")

        remaining = await self.recorder.time_until_next_update(self.feed.pool_address)
        return CheckResult(
            passed=False,
            message=f"Next update allowed in {format_time_remaining(remaining)}",
            retry_recommended=True,
        )
