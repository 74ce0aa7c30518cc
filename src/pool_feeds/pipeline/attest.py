"""Attestation of a recorded price and submission of the proof to the feed."""

from __future__ import annotations

import time
from typing import Any

import backoff

from ..attestation.client import AttestationError, FinalizationTimeoutError
from ..attestation.session import AttestationPhase, AttestationSession
from ..clients.ledger import RPC_ERRORS, LedgerError
from ..oracle.errors import ProofRejected
from ..oracle.feed import validate_proof
from ..price_math import format_price
from .context import CycleContext, UpdatePhase

ATTEMPT_ERRORS = (AttestationError, LedgerError, ProofRejected, *RPC_ERRORS)


def is_retryable(e: Exception) -> bool:
    """Errors carry ``retry_recommended``; bare RPC failures are transient."""
    flag = getattr(e, "retry_recommended", None)
    if flag is None:
        return isinstance(e, RPC_ERRORS)
    return bool(flag)


async def _run_attempt(ctx: CycleContext) -> None:
    """One full prepare -> submit -> finalize -> fetch -> verify -> commit pass."""
    s = ctx.state.settings
    services = ctx.services
    client = services.attestation
    recording = ctx.recording_required

    session = AttestationSession(tx_hash=recording.tx_hash)
    ctx.session = session
    try:
        ctx.report_phase(UpdatePhase.REQUESTING_ATTESTATION, tx_hash=recording.tx_hash)
        session.request = await client.prepare(recording.tx_hash)
        session.advance(AttestationPhase.PREPARED)

        submission = await client.submit(session.request)
        session.submission_tx = submission.tx_hash
        session.voting_round = submission.voting_round
        session.fee_wei = submission.fee_wei
        session.gas_cost_wei = submission.gas_cost_wei
        session.advance(AttestationPhase.SUBMITTED)
        ctx.stats.attestation_fees_wei += submission.fee_wei
        ctx.stats.gas_cost_wei += submission.gas_cost_wei

        session.advance(AttestationPhase.FINALIZING)
        ctx.report_phase(
            UpdatePhase.WAITING_FINALIZATION,
            f"round {submission.voting_round}",
            voting_round=submission.voting_round,
        )
        if not await client.await_finalization(submission.voting_round):
            raise FinalizationTimeoutError(
                submission.voting_round, client.finalization_timeout
            )

        ctx.report_phase(UpdatePhase.RETRIEVING_PROOF, voting_round=submission.voting_round)
        session.proof = await client.fetch_proof(submission.voting_round, session.request)
        session.advance(AttestationPhase.PROOF_FETCHED)

        if s.verify_proof_locally:
            ctx.report_phase(UpdatePhase.VERIFYING_PROOF, voting_round=submission.voting_round)
            root = await client.merkle_root(submission.voting_round)
            validate_proof(
                session.proof,
                merkle_root=root,
                recorder=services.recorder.address,
                pool=ctx.feed.pool_address,
            )

        ctx.report_phase(UpdatePhase.SUBMITTING_PROOF)
        feed_client = services.feed_client(ctx.feed.alias)
        tx_hash, receipt = await feed_client.update_from_proof(
            session.proof, gas_price=ctx.gas_price
        )
        ctx.stats.gas_used += int(receipt["gasUsed"])
        ctx.stats.gas_cost_wei += int(receipt["gasUsed"]) * int(
            receipt.get("effectiveGasPrice") or 0
        )
        session.advance(AttestationPhase.DONE)
    except ATTEMPT_ERRORS as e:
        if not session.finished:
            session.fail(e)
        raise

    try:
        reading = await feed_client.read_state()
    except RPC_ERRORS as e:
        ctx.state.logger.warning(
            "Proof committed in %s but read-back failed: %s",
            tx_hash,
            e,
            extra={"feed": ctx.feed.alias},
        )
        ctx.report_phase(UpdatePhase.SUCCESS, tx_hash=tx_hash)
        return

    ctx.committed_value = reading.latest_value
    ctx.report_phase(
        UpdatePhase.SUCCESS,
        f"feed value {format_price(reading.latest_value)} (update #{reading.update_count})",
        tx_hash=tx_hash,
        voting_round=submission.voting_round,
    )


async def attest_recording(ctx: CycleContext) -> bool:
    """Attest the cycle's recording and commit it to the feed.

    Each attempt reruns the whole chain from scratch. Retries use a fixed delay
    and stop early on errors that are not retryable (proof rejections, reverted
    hub transactions). Returns True when the feed accepted the proof.
    """
    s = ctx.state.settings
    log = ctx.state.logger
    alias = ctx.feed.alias
    max_tries = s.attestation_retries + 1

    def _should_giveup(e: Exception) -> bool:
        return not is_retryable(e)

    def _on_backoff(details: Any) -> None:
        log.warning(
            "Attestation attempt %d of %d failed: %s",
            details["tries"],
            max_tries,
            details.get("exception"),
            extra={"feed": alias},
        )

    @backoff.on_exception(
        backoff.constant,
        ATTEMPT_ERRORS,
        max_tries=max_tries,
        interval=s.attestation_retry_delay_seconds,
        jitter=None,
        giveup=_should_giveup,
        on_backoff=_on_backoff,
    )
    async def _attempt_with_retry() -> None:
        await _run_attempt(ctx)

    started = time.monotonic()
    feed_stats = ctx.stats.feed(alias)
    try:
        await _attempt_with_retry()
    except ATTEMPT_ERRORS as e:
        ctx.stats.attestations_failed += 1
        feed_stats.attestation_failures += 1
        reason = "rejected" if not is_retryable(e) else "retries exhausted"
        ctx.report_phase(UpdatePhase.ERROR, f"attestation {reason}: {e}")
        return False

    ctx.stats.attestations_ok += 1
    ctx.stats.attestation_seconds += time.monotonic() - started
    feed_stats.attestations += 1
    feed_stats.last_attestation_at = time.time()
    feed_stats.last_committed_price = ctx.committed_value
    return True
