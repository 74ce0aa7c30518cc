from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..attestation.client import AttestationClient
from ..attestation.session import AttestationSession
from ..clients.custom_feed import CustomFeedClient
from ..clients.ledger import LedgerClient
from ..clients.price_recorder import PriceRecorderClient
from ..domain import FeedConfig, RecordingResult
from ..report.stats import SchedulerStats
from ..state import AppState


class UpdatePhase(str, Enum):
    CHECKING = "checking"
    RECORDING = "recording"
    REQUESTING_ATTESTATION = "requesting-attestation"
    WAITING_FINALIZATION = "waiting-finalization"
    RETRIEVING_PROOF = "retrieving-proof"
    VERIFYING_PROOF = "verifying-proof"
    SUBMITTING_PROOF = "submitting-proof"
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class CycleOutcome(str, Enum):
    SKIPPED = "skipped"
    RECORDING_FAILED = "recording-failed"
    PRICE_INVALID = "price-invalid"
    ATTESTATION_FAILED = "attestation-failed"
    ATTESTED = "attested"


@dataclass
class PipelineServices:
    """Ledger-facing collaborators shared by every feed cycle."""

    ledger: LedgerClient
    recorder: PriceRecorderClient
    attestation: AttestationClient
    feed_clients: dict[str, CustomFeedClient]

    def feed_client(self, alias: str) -> CustomFeedClient:
        try:
            return self.feed_clients[alias]
        except KeyError:
            raise RuntimeError(f"No feed client configured for {alias}") from None


@dataclass
class CycleContext:
    """State of one feed's record-then-attest cycle."""

    state: AppState
    services: PipelineServices
    feed: FeedConfig
    stats: SchedulerStats
    phase: UpdatePhase = UpdatePhase.CHECKING
    gas_price: int | None = None
    recording: RecordingResult | None = None
    recorded_price: int | None = None
    session: AttestationSession | None = None
    committed_value: int | None = None
    started_at: float = field(default_factory=time.monotonic)
    history: list[tuple[UpdatePhase, float]] = field(default_factory=list)

    @property
    def recording_required(self) -> RecordingResult:
        if self.recording is None:
            raise RuntimeError(
                "Recording has not been set. Ensure record_price() is called before accessing this property."
            )
        return self.recording

    @property
    def session_required(self) -> AttestationSession:
        if self.session is None:
            raise RuntimeError(
                "Attestation session has not been set. Ensure attest_recording() has started before accessing this property."
            )
        return self.session

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def report_phase(self, phase: UpdatePhase, message: str = "", **fields: Any) -> None:
        """Record a phase transition and log it with structured fields."""
        self.phase = phase
        self.history.append((phase, time.time()))
        extra = {
            "feed": self.feed.alias,
            "phase": phase.value,
            "elapsed_s": round(self.elapsed, 1),
            **fields,
        }
        log = self.state.logger
        if phase is UpdatePhase.ERROR:
            log.error("%s %s", phase.value, message, extra=extra)
        else:
            log.info("%s %s", phase.value, message, extra=extra)
