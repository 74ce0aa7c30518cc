"""One feed's record-then-attest cycle."""

from __future__ import annotations

from .attest import attest_recording
from .context import CycleContext, CycleOutcome, UpdatePhase
from .record import check_eligibility, record_price


async def run_feed_cycle(ctx: CycleContext) -> CycleOutcome:
    """Drive ``ctx.feed`` through eligibility, recording and attestation.

    Steps run strictly in order; each consumes the previous step's output:
    1. Eligibility (update interval, gas ceiling)
    2. Price recording
    3. Attestation, local verification and proof submission

    Any error raised in steps 1-2 counts as a recording failure, so a
    persistent fault of any kind reaches the circuit breaker. Attestation
    failures are reported and end the cycle without affecting the caller's
    failure count.
    """
    try:
        if not await check_eligibility(ctx):
            return CycleOutcome.SKIPPED
        recording = await record_price(ctx)
    except Exception as e:
        ctx.report_phase(UpdatePhase.ERROR, f"recording failed: {e!r}")
        return CycleOutcome.RECORDING_FAILED

    if recording.snapshot is not None and ctx.recorded_price is None:
        ctx.report_phase(
            UpdatePhase.ERROR,
            "recorded price is outside the valid range; not attesting",
            tx_hash=recording.tx_hash,
        )
        return CycleOutcome.PRICE_INVALID

    if await attest_recording(ctx):
        return CycleOutcome.ATTESTED
    return CycleOutcome.ATTESTATION_FAILED
