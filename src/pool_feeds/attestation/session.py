"""Phase tracking for a single attestation request."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..domain import AttestationRequest, Proof


class AttestationPhase(str, Enum):
    IDLE = "idle"
    PREPARED = "prepared"
    SUBMITTED = "submitted"
    FINALIZING = "finalizing"
    PROOF_FETCHED = "proof-fetched"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[AttestationPhase, frozenset[AttestationPhase]] = {
    AttestationPhase.IDLE: frozenset({AttestationPhase.PREPARED}),
    AttestationPhase.PREPARED: frozenset({AttestationPhase.SUBMITTED}),
    AttestationPhase.SUBMITTED: frozenset({AttestationPhase.FINALIZING}),
    AttestationPhase.FINALIZING: frozenset({AttestationPhase.PROOF_FETCHED}),
    AttestationPhase.PROOF_FETCHED: frozenset({AttestationPhase.DONE}),
    AttestationPhase.DONE: frozenset(),
    AttestationPhase.FAILED: frozenset(),
}

TERMINAL_PHASES = frozenset({AttestationPhase.DONE, AttestationPhase.FAILED})


class InvalidTransitionError(RuntimeError):
    pass


@dataclass
class AttestationSession:
    """Progress of one request through prepare, submit, finalize and fetch.

    Every field needed to resume from the current phase lives here, so a session
    can be inspected, logged or abandoned between phases. ``FAILED`` is reachable
    from any non-terminal phase.
    """

    tx_hash: str
    phase: AttestationPhase = AttestationPhase.IDLE
    request: AttestationRequest | None = None
    submission_tx: str | None = None
    voting_round: int | None = None
    fee_wei: int = 0
    gas_cost_wei: int = 0
    proof: Proof | None = None
    error: str | None = None
    history: list[tuple[AttestationPhase, float]] = field(default_factory=list)
    clock: Callable[[], float] = field(default=time.time, repr=False, compare=False)

    def advance(self, phase: AttestationPhase) -> None:
        if phase is AttestationPhase.FAILED:
            if self.phase in TERMINAL_PHASES:
                raise InvalidTransitionError(
                    f"Cannot fail a session already in {self.phase.value}"
                )
        elif phase not in _TRANSITIONS[self.phase]:
            raise InvalidTransitionError(
                f"Cannot move from {self.phase.value} to {phase.value}"
            )
        self.phase = phase
        self.history.append((phase, self.clock()))

    def fail(self, error: BaseException | str) -> None:
        self.error = str(error)
        self.advance(AttestationPhase.FAILED)

    @property
    def finished(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def voting_round_required(self) -> int:
        if self.voting_round is None:
            raise RuntimeError(
                "Voting round has not been set. Ensure submit() is called before accessing this property."
            )
        return self.voting_round

    @property
    def request_required(self) -> AttestationRequest:
        if self.request is None:
            raise RuntimeError(
                "Request has not been set. Ensure prepare() is called before accessing this property."
            )
        return self.request

    @property
    def proof_required(self) -> Proof:
        if self.proof is None:
            raise RuntimeError(
                "Proof has not been set. Ensure fetch_proof() is called before accessing this property."
            )
        return self.proof
