"""Eligibility checks and the price-recording transaction."""

from __future__ import annotations

import time

from ..checks.gas_price import GasPriceCheck
from ..checks.interval import UpdateIntervalCheck
from ..domain import RecordingResult
from ..price_math import PriceComputationError, compute_price, format_price
from .context import CycleContext, UpdatePhase


async def check_eligibility(ctx: CycleContext) -> bool:
    """Return True when the feed may be recorded now.

    The update interval is checked first, then the gas ceiling. A failed check
    marks the cycle SKIPPED; it is not an error.
    """
    s = ctx.state.settings
    ctx.report_phase(UpdatePhase.CHECKING)

    interval = await UpdateIntervalCheck(ctx.services.recorder, ctx.feed).run_check()
    if not interval.passed:
        ctx.report_phase(UpdatePhase.SKIPPED, interval.message)
        return False

    gas = GasPriceCheck(ctx.services.ledger, s.max_gas_price_wei)
    gas_result = await gas.run_check()
    if not gas_result.passed:
        ctx.report_phase(UpdatePhase.SKIPPED, gas_result.message)
        return False

    ctx.gas_price = gas.last_gas_price
    return True


async def record_price(ctx: CycleContext) -> RecordingResult:
    """Send ``recordPrice`` for the feed's pool and account for it.

    Raises:
        LedgerError: If the transaction cannot be sent, times out or reverts.
    """
    feed = ctx.feed
    ctx.report_phase(UpdatePhase.RECORDING, f"pool {feed.pool_address}")

    result = await ctx.services.recorder.record_price(
        feed.pool_address, gas_price=ctx.gas_price
    )
    ctx.recording = result

    stats = ctx.stats
    stats.gas_used += result.gas_used
    stats.gas_cost_wei += result.gas_cost_wei
    feed_stats = stats.feed(feed.alias)
    feed_stats.recordings += 1
    feed_stats.last_recording_at = time.time()

    if result.snapshot is not None:
        try:
            ctx.recorded_price = compute_price(
                result.snapshot.sqrt_price_x96,
                feed.token0_decimals,
                feed.token1_decimals,
                feed.invert_price,
            )
        except PriceComputationError as e:
            ctx.state.logger.error(
                "Recorded price is invalid: %s", e, extra={"feed": feed.alias}
            )
        else:
            feed_stats.last_recorded_price = ctx.recorded_price

    ctx.state.logger.info(
        "Recorded %s (gas %d, tx %s)",
        format_price(ctx.recorded_price) if ctx.recorded_price else "n/a",
        result.gas_used,
        result.tx_hash,
        extra={"feed": feed.alias, "tx_hash": result.tx_hash},
    )
    return result
