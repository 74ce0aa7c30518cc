import pytest

from builders import TX_HASH, make_request
from pool_feeds.attestation.session import (
    AttestationPhase,
    AttestationSession,
    InvalidTransitionError,
)

HAPPY_PATH = [
    AttestationPhase.PREPARED,
    AttestationPhase.SUBMITTED,
    AttestationPhase.FINALIZING,
    AttestationPhase.PROOF_FETCHED,
    AttestationPhase.DONE,
]


def test_happy_path_reaches_done():
    session = AttestationSession(tx_hash=TX_HASH)
    assert session.phase is AttestationPhase.IDLE

    for phase in HAPPY_PATH:
        session.advance(phase)

    assert session.finished
    assert [phase for phase, _ in session.history] == HAPPY_PATH


def test_phases_cannot_be_skipped():
    session = AttestationSession(tx_hash=TX_HASH)
    session.advance(AttestationPhase.PREPARED)

    with pytest.raises(InvalidTransitionError):
        session.advance(AttestationPhase.FINALIZING)
    assert session.phase is AttestationPhase.PREPARED


@pytest.mark.parametrize("steps", range(len(HAPPY_PATH)))
def test_failure_is_reachable_from_any_open_phase(steps):
    session = AttestationSession(tx_hash=TX_HASH)
    for phase in HAPPY_PATH[:steps]:
        session.advance(phase)

    session.fail(RuntimeError("relay unreachable"))

    assert session.phase is AttestationPhase.FAILED
    assert session.error == "relay unreachable"
    assert session.finished


def test_terminal_phases_are_final():
    session = AttestationSession(tx_hash=TX_HASH)
    session.fail("verifier down")

    with pytest.raises(InvalidTransitionError):
        session.fail("again")
    with pytest.raises(InvalidTransitionError):
        session.advance(AttestationPhase.PREPARED)


def test_required_accessors():
    session = AttestationSession(tx_hash=TX_HASH)

    with pytest.raises(RuntimeError, match="prepare"):
        _ = session.request_required
    with pytest.raises(RuntimeError, match="submit"):
        _ = session.voting_round_required
    with pytest.raises(RuntimeError, match="fetch_proof"):
        _ = session.proof_required

    session.request = make_request()
    session.voting_round = 7
    assert session.request_required.transaction_hash == TX_HASH
    assert session.voting_round_required == 7


def test_history_uses_injected_clock():
    ticks = iter([100.0, 160.5, 475.0])
    session = AttestationSession(tx_hash=TX_HASH, clock=lambda: next(ticks))

    session.advance(AttestationPhase.PREPARED)
    session.advance(AttestationPhase.SUBMITTED)
    session.fail("finalization timed out")

    assert session.history == [
        (AttestationPhase.PREPARED, 100.0),
        (AttestationPhase.SUBMITTED, 160.5),
        (AttestationPhase.FAILED, 475.0),
    ]
