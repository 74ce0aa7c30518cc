"""Rejections raised by the verify-and-commit step.

A rejected proof is never retried: its content cannot change, so only a fresh
pipeline run can produce an acceptable one.
"""

from __future__ import annotations


class ProofRejected(Exception):
    """Base class for every proof rejection."""

    retry_recommended = False


class UpdatesPaused(ProofRejected):
    """Updates are administratively disabled on the feed."""


class InvalidProof(ProofRejected):
    """The Merkle path does not lead to the published root."""


class WrongContract(ProofRejected):
    """The attested transaction was not sent to the configured recorder."""


class SourceTxFailed(ProofRejected):
    """The attested transaction reverted."""


class EventNotFound(ProofRejected):
    """No PriceRecorded event from the recorder is present in the proof."""


class WrongPool(ProofRejected):
    """The PriceRecorded event is for a different pool."""


class InvalidPrice(ProofRejected):
    """The event decodes to a price outside (0, 2**128)."""


class Unauthorized(Exception):
    """An owner-only operation was called by someone else."""
