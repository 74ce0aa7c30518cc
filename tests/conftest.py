from __future__ import annotations

import logging
import os

import pytest

from builders import FEED, POOL, RECORDER, make_feed
from pool_feeds.domain import FeedConfig


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep real config files and POOL_FEEDS_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("POOL_FEEDS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def feed_config() -> FeedConfig:
    return make_feed()


@pytest.fixture
def settings_kwargs() -> dict:
    """Minimal valid settings for a single feed on Coston2."""
    return {
        "network": "coston2",
        "price_recorder_address": RECORDER,
        "private_key": "0x" + "11" * 32,
        "feeds": [
            {
                "alias": "WFLR_USDC",
                "pool_address": POOL,
                "feed_address": FEED,
                "token0_decimals": 18,
                "token1_decimals": 18,
            }
        ],
        "attestation_retry_delay_seconds": 0,
        "preflight_retry_delay_seconds": 0,
        "check_interval_seconds": 0,
    }


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("pool_feeds.test")
