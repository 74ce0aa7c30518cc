from unittest.mock import AsyncMock

import pytest

from builders import create_mock_services, make_feed
from pool_feeds.checks.preflight import PreflightError
from pool_feeds.pipeline import preflight as preflight_module
from pool_feeds.pipeline.preflight import run_preflight
from pool_feeds.settings import FeedsSettings
from pool_feeds.state import AppState


@pytest.fixture
def state(settings_kwargs, test_logger):
    return AppState(settings=FeedsSettings(**settings_kwargs), logger=test_logger)


@pytest.mark.asyncio
async def test_retryable_failure_is_retried(state, monkeypatch):
    checks = AsyncMock(
        side_effect=[PreflightError("recorder paused", retry_recommended=True), None]
    )
    monkeypatch.setattr(preflight_module, "run_preflight_checks", checks)

    await run_preflight(state, create_mock_services(), [make_feed()])

    assert checks.await_count == 2


@pytest.mark.asyncio
async def test_non_retryable_failure_stops_immediately(state, monkeypatch):
    checks = AsyncMock(side_effect=PreflightError("wrong chain"))
    monkeypatch.setattr(preflight_module, "run_preflight_checks", checks)

    with pytest.raises(PreflightError, match="wrong chain"):
        await run_preflight(state, create_mock_services(), [make_feed()])

    assert checks.await_count == 1


@pytest.mark.asyncio
async def test_retries_exhausted(state, monkeypatch):
    checks = AsyncMock(side_effect=PreflightError("rpc down", retry_recommended=True))
    monkeypatch.setattr(preflight_module, "run_preflight_checks", checks)

    with pytest.raises(PreflightError):
        await run_preflight(state, create_mock_services(), [make_feed()])

    # preflight_retries defaults to 2
    assert checks.await_count == 3


@pytest.mark.asyncio
async def test_real_checks_pass_against_healthy_services(state):
    services = create_mock_services()
    services.ledger.chain_id = AsyncMock(return_value=114)
    services.recorder.is_recording = AsyncMock(return_value=True)
    services.recorder.is_pool_enabled = AsyncMock(return_value=True)
    feed_client = services.feed_client.return_value
    feed_client.accepting_updates = AsyncMock(return_value=True)
    services.feed_clients = {"WFLR_USDC": feed_client}

    await run_preflight(state, services, [make_feed()])
