"""Construction of the ledger-facing clients from settings."""

from __future__ import annotations

from ..attestation.client import AttestationClient
from ..clients.custom_feed import CustomFeedClient
from ..clients.ledger import LedgerClient
from ..clients.price_recorder import PriceRecorderClient
from ..settings import FeedsSettings
from .context import PipelineServices


def build_services(settings: FeedsSettings, read_only: bool = False) -> PipelineServices:
    """Wire every client to one ledger connection and signing account."""
    ledger = LedgerClient.from_settings(settings, read_only=read_only)
    recorder = PriceRecorderClient(
        ledger, settings.price_recorder_required, gas_limit=settings.record_gas_limit
    )
    attestation = AttestationClient.from_settings(settings, ledger)
    feed_clients = {
        feed.alias: CustomFeedClient(
            ledger, feed.feed_address, gas_limit=settings.proof_gas_limit
        )
        for feed in settings.feed_configs()
    }
    return PipelineServices(
        ledger=ledger,
        recorder=recorder,
        attestation=attestation,
        feed_clients=feed_clients,
    )
