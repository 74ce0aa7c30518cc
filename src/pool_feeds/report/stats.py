"""Running scheduler statistics."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class FeedStats:
    alias: str
    recordings: int = 0
    attestations: int = 0
    attestation_failures: int = 0
    last_recorded_price: int | None = None
    last_committed_price: int | None = None
    last_recording_at: float | None = None
    last_attestation_at: float | None = None


@dataclass
class SchedulerStats:
    started_at: float = field(default_factory=time.time)
    cycles: int = 0
    recordings_ok: int = 0
    recordings_failed: int = 0
    consecutive_recording_failures: int = 0
    attestations_ok: int = 0
    attestations_failed: int = 0
    skipped: int = 0
    gas_used: int = 0
    gas_cost_wei: int = 0
    attestation_fees_wei: int = 0
    attestation_seconds: float = 0.0
    feeds: dict[str, FeedStats] = field(default_factory=dict)

    def feed(self, alias: str) -> FeedStats:
        if alias not in self.feeds:
            self.feeds[alias] = FeedStats(alias=alias)
        return self.feeds[alias]

    @property
    def average_attestation_seconds(self) -> float:
        if not self.attestations_ok:
            return 0.0
        return self.attestation_seconds / self.attestations_ok

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.started_at
