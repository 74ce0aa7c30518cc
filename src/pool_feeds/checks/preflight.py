"""Startup checks run once before the scheduler loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Sequence

from ..clients.custom_feed import CustomFeedClient
from ..clients.ledger import LedgerClient
from ..clients.price_recorder import PriceRecorderClient
from ..domain import FeedConfig
from .balance import BalanceCheck
from .base import BaseCheck, CheckResult

logger = logging.getLogger(__name__)


class PreflightError(Exception):
    """Raised when a startup check fails and the scheduler must not start."""

    def __init__(self, message: str, retry_recommended: bool = False):
        super().__init__(message)
        self.retry_recommended = retry_recommended


class ChainIdCheck(BaseCheck):
    def __init__(self, ledger: LedgerClient, expected_chain_id: int):
        self.ledger = ledger
        self.expected_chain_id = expected_chain_id

    @property
    def name(self) -> str:
        return "Chain ID Check"

    async def run_check(self) -> CheckResult:
        chain_id = await self.ledger.chain_id()
        if chain_id != self.expected_chain_id:
            return CheckResult(
                passed=False,
                message=f"RPC is on chain {chain_id}, expected {self.expected_chain_id}",
            )
        return CheckResult(passed=True, message=f"Connected to chain {chain_id}")


class RecorderActiveCheck(BaseCheck):
    def __init__(self, recorder: PriceRecorderClient):
        self.recorder = recorder

    @property
    def name(self) -> str:
        return "Recorder Active Check"

    async def run_check(self) -> CheckResult:
        if not await self.recorder.is_recording():
            return CheckResult(
                passed=False,
                message=f"PriceRecorder {self.recorder.address} is paused",
                retry_recommended=True,
            )
        return CheckResult(passed=True, message="PriceRecorder is recording")


class PoolsEnabledCheck(BaseCheck):
    def __init__(self, recorder: PriceRecorderClient, feeds: Sequence[FeedConfig]):
        self.recorder = recorder
        self.feeds = feeds

    @property
    def name(self) -> str:
        return "Pools Enabled Check"

    async def run_check(self) -> CheckResult:
        enabled = await asyncio.gather(
            *[self.recorder.is_pool_enabled(f.pool_address) for f in self.feeds]
        )
        disabled = [f.alias for f, ok in zip(self.feeds, enabled) if not ok]
        if disabled:
            return CheckResult(
                passed=False,
                message=f"Pools not enabled on recorder: {', '.join(disabled)}",
            )
        return CheckResult(passed=True, message=f"{len(self.feeds)} pool(s) enabled")


class FeedsAcceptingCheck(BaseCheck):
    def __init__(self, feed_clients: Mapping[str, CustomFeedClient]):
        self.feed_clients = feed_clients

    @property
    def name(self) -> str:
        return "Feeds Accepting Check"

    async def run_check(self) -> CheckResult:
        aliases = list(self.feed_clients)
        accepting = await asyncio.gather(
            *[self.feed_clients[a].accepting_updates() for a in aliases]
        )
        paused = [a for a, ok in zip(aliases, accepting) if not ok]
        if paused:
            return CheckResult(
                passed=False,
                message=f"Feeds not accepting updates: {', '.join(paused)}",
            )
        return CheckResult(passed=True, message=f"{len(aliases)} feed(s) accepting updates")


async def run_preflight_checks(checks: Sequence[BaseCheck]) -> None:
    """Run ``checks`` concurrently.

    Raises:
        PreflightError: If any check fails or raises. ``retry_recommended`` is set
            when any failed check recommends it.
    """
    logger.info("Running preflight checks...")
    results = await asyncio.gather(
        *[check.run_check() for check in checks],
        return_exceptions=True,
    )

    failed_checks = []
    retry_recommended = False
    for check, result in zip(checks, results):
        if isinstance(result, Exception):
            logger.error("Check '%s' raised exception: %s", check.name, result)
            failed_checks.append(f"{check.name}: {result}")
            retry_recommended = True
            continue

        if isinstance(result, CheckResult):
            if result.passed:
                logger.info("✓ %s: %s", check.name, result.message)
            else:
                logger.warning("✗ %s: %s", check.name, result.message)
                failed_checks.append(result.message)
                if result.retry_recommended:
                    retry_recommended = True

    if failed_checks:
        error_msg = f"Preflight failed: {'; '.join(failed_checks)}"
        raise PreflightError(error_msg, retry_recommended=retry_recommended)


def build_preflight_checks(
    ledger: LedgerClient,
    recorder: PriceRecorderClient,
    feed_clients: Mapping[str, CustomFeedClient],
    feeds: Sequence[FeedConfig],
    *,
    expected_chain_id: int,
    min_balance_wei: int,
    critical_balance_wei: int,
    symbol: str,
) -> list[BaseCheck]:
    return [
        ChainIdCheck(ledger, expected_chain_id),
        RecorderActiveCheck(recorder),
        PoolsEnabledCheck(recorder, feeds),
        FeedsAcceptingCheck(feed_clients),
        BalanceCheck(ledger, min_balance_wei, critical_balance_wei, symbol),
    ]
