"""Long-running control loop that drives every configured feed in turn."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from .checks.balance import BalanceCheck, BalanceStatus
from .clients.ledger import RPC_ERRORS
from .domain import FeedConfig
from .pipeline.context import CycleContext, CycleOutcome, PipelineServices
from .pipeline.run import run_feed_cycle
from .report.formatter import print_stats
from .report.stats import SchedulerStats
from .state import AppState


class SchedulerHalted(Exception):
    """Raised when a systemic failure stops the whole loop."""

    retry_recommended = False

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class SchedulerState:
    """Loop bookkeeping owned by one scheduler instance."""

    cycle: int = 0
    next_index: int = 0
    running: bool = False
    last_stats_at: float = 0.0
    disabled: set[str] = field(default_factory=set)


class UpdateScheduler:
    """Round-robin over feeds, one full record-then-attest cycle at a time.

    Clock and sleep are injectable so the loop can be driven in tests without
    real delays.
    """

    def __init__(
        self,
        state: AppState,
        services: PipelineServices,
        feeds: Sequence[FeedConfig],
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        stats_printer: Callable[[SchedulerStats], None] | None = None,
    ):
        if not feeds:
            raise ValueError("at least one feed must be configured")
        self.state = state
        self.services = services
        self.feeds = list(feeds)
        self.stats = SchedulerStats()
        self.loop_state = SchedulerState()
        self._sleep = sleep
        self._clock = clock
        symbol = state.settings.native_symbol
        self._print_stats = stats_printer or (
            lambda stats: print_stats(stats, symbol=symbol)
        )

    def next_feed(self) -> FeedConfig:
        """Next feed in rotation, passing over feeds taken out of service."""
        for _ in range(len(self.feeds)):
            feed = self.feeds[self.loop_state.next_index]
            self.loop_state.next_index = (self.loop_state.next_index + 1) % len(self.feeds)
            if feed.alias not in self.loop_state.disabled:
                return feed
        raise SchedulerHalted("No feeds left in rotation")

    def disable_feed(self, feed: FeedConfig, reason: str) -> None:
        """Take ``feed`` out of rotation for the life of this scheduler."""
        self.loop_state.disabled.add(feed.alias)
        self.state.logger.error(
            "Removing feed from rotation: %s", reason, extra={"feed": feed.alias}
        )
        if len(self.loop_state.disabled) == len(self.feeds):
            raise SchedulerHalted("No feeds left in rotation")

    def stop(self) -> None:
        self.loop_state.running = False

    async def check_balance(self) -> BalanceStatus | None:
        """Check funding every K cycles.

        Raises:
            SchedulerHalted: Balance is below the critical threshold.
        """
        s = self.state.settings
        log = self.state.logger
        if self.loop_state.cycle % s.balance_check_every_cycles != 0:
            return None

        check = BalanceCheck(
            self.services.ledger,
            s.min_balance_wei,
            s.critical_balance_wei,
            s.native_symbol,
        )
        try:
            result = await check.run_check()
        except RPC_ERRORS as e:
            log.warning("Balance check failed: %s", e)
            return None

        if check.status is BalanceStatus.CRITICAL:
            log.critical("%s - stopping", result.message)
            raise SchedulerHalted(result.message)
        if check.status is BalanceStatus.LOW:
            log.warning(result.message)
        else:
            log.debug(result.message)
        return check.status

    def apply_outcome(self, outcome: CycleOutcome) -> None:
        """Update counters; trip the circuit breaker on sustained recording failures."""
        s = self.state.settings
        stats = self.stats
        if outcome is CycleOutcome.SKIPPED:
            stats.skipped += 1
            return
        if outcome is CycleOutcome.RECORDING_FAILED:
            stats.recordings_failed += 1
            stats.consecutive_recording_failures += 1
            if stats.consecutive_recording_failures >= s.circuit_breaker_threshold:
                reason = (
                    f"Circuit breaker: {stats.consecutive_recording_failures} "
                    "consecutive recording failures"
                )
                self.state.logger.critical(reason)
                raise SchedulerHalted(reason)
            return
        stats.recordings_ok += 1
        stats.consecutive_recording_failures = 0

    def _maybe_print_stats(self) -> None:
        interval = self.state.settings.stats_interval_minutes * 60
        now = self._clock()
        if now - self.loop_state.last_stats_at >= interval:
            self._print_stats(self.stats)
            self.loop_state.last_stats_at = now

    async def run_cycle(self) -> CycleOutcome:
        """Run one scheduler cycle for the next feed in rotation."""
        self.loop_state.cycle += 1
        self.stats.cycles = self.loop_state.cycle
        await self.check_balance()

        feed = self.next_feed()
        ctx = CycleContext(
            state=self.state,
            services=self.services,
            feed=feed,
            stats=self.stats,
        )
        outcome = await run_feed_cycle(ctx)
        self.apply_outcome(outcome)
        if outcome is CycleOutcome.PRICE_INVALID:
            self.disable_feed(
                feed, "recorded price is outside the valid range; check decimals and inversion"
            )
        return outcome

    async def run(self, max_cycles: int | None = None) -> SchedulerStats:
        """Loop until stopped, ``max_cycles`` is reached or a systemic failure.

        Raises:
            SchedulerHalted: Circuit breaker tripped or balance critical.
        """
        s = self.state.settings
        log = self.state.logger
        self.loop_state.running = True
        self.loop_state.last_stats_at = self._clock()

        log.info(
            "Scheduler started: %d feed(s), check interval %.0fs",
            len(self.feeds),
            s.check_interval_seconds,
        )
        try:
            while self.loop_state.running:
                try:
                    await self.run_cycle()
                    self._maybe_print_stats()
                except SchedulerHalted:
                    raise
                except Exception:
                    log.exception("Error in main loop")

                if max_cycles is not None and self.loop_state.cycle >= max_cycles:
                    break
                if self.loop_state.running:
                    await self._sleep(s.check_interval_seconds)
        finally:
            self.loop_state.running = False
            self._print_stats(self.stats)
            log.info("Scheduler stopped after %d cycle(s)", self.loop_state.cycle)
        return self.stats
