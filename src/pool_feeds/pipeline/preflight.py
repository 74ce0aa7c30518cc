"""Startup checks before the scheduler loop starts."""

from __future__ import annotations

from typing import Any, Sequence

import backoff

from ..checks.preflight import (
    PreflightError,
    build_preflight_checks,
    run_preflight_checks,
)
from ..domain import FeedConfig
from ..state import AppState
from .context import PipelineServices


async def run_preflight(
    state: AppState,
    services: PipelineServices,
    feeds: Sequence[FeedConfig],
) -> None:
    """Run preflight checks with retry logic.

    Args:
        state: Application state containing settings and logger
        services: Ledger-facing clients
        feeds: Feeds the scheduler will drive

    Raises:
        PreflightError: If checks fail after all retries
    """
    s = state.settings
    log = state.logger

    log.info(
        "Running preflight (max retries: %d, delay: %.1fs)...",
        s.preflight_retries,
        s.preflight_retry_delay_seconds,
    )

    checks = build_preflight_checks(
        services.ledger,
        services.recorder,
        services.feed_clients,
        feeds,
        expected_chain_id=s.chain_id,
        min_balance_wei=s.min_balance_wei,
        critical_balance_wei=s.critical_balance_wei,
        symbol=s.native_symbol,
    )

    def _should_giveup(e: Exception) -> bool:
        """Determine if we should give up retrying based on the exception."""
        return isinstance(e, PreflightError) and not e.retry_recommended

    def _on_backoff(details: Any) -> None:
        log.warning(
            "Preflight failed (attempt %d of %d): %s",
            details["tries"],
            s.preflight_retries + 1,
            details.get("exception", details.get("value")),
        )

    def _on_giveup(details: Any) -> None:
        exc = details.get("exception", details.get("value"))
        if isinstance(exc, PreflightError) and not exc.retry_recommended:
            log.error("Preflight failed (retry not recommended): %s", exc)
        else:
            log.error(
                "Preflight failed after %d attempts: %s",
                details["tries"],
                exc,
            )

    @backoff.on_exception(
        backoff.constant,
        PreflightError,
        max_tries=s.preflight_retries + 1,
        interval=s.preflight_retry_delay_seconds,
        jitter=None,
        giveup=_should_giveup,
        on_backoff=_on_backoff,
        on_giveup=_on_giveup,
    )
    async def _run_with_retry() -> None:
        await run_preflight_checks(checks)

    await _run_with_retry()
    log.info("Preflight passed")
