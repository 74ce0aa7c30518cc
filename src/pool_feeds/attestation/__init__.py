from .client import (
    AttestationClient,
    AttestationError,
    AttestationSubmissionError,
    FinalizationTimeoutError,
    ProofUnavailableError,
    Submission,
    VerifierError,
)
from .session import AttestationPhase, AttestationSession, InvalidTransitionError

__all__ = [
    "AttestationClient",
    "AttestationError",
    "AttestationSubmissionError",
    "FinalizationTimeoutError",
    "ProofUnavailableError",
    "Submission",
    "VerifierError",
    "AttestationPhase",
    "AttestationSession",
    "InvalidTransitionError",
]
