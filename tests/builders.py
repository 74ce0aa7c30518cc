"""Builders for feeds, attested responses, Merkle proofs and mocked services."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from eth_utils import keccak

from pool_feeds.clients.custom_feed import FeedReading
from pool_feeds.constants import COSTON2_NETWORK, EVM_TRANSACTION_TYPE, Q96
from pool_feeds.domain import (
    AttestationRequest,
    AttestationResponse,
    AttestedEvent,
    FeedConfig,
    PoolSnapshot,
    Proof,
    RecordingResult,
    RequestBody,
    ResponseBody,
)
from pool_feeds.proof.codec import encode_price_recorded, leaf_hash
from pool_feeds.proof.merkle import root_and_proof

# Digit-only addresses are their own checksum form
RECORDER = "0x" + "12" * 20
POOL = "0x" + "34" * 20
OTHER_POOL = "0x" + "56" * 20
FEED = "0x" + "78" * 20
OTHER_FEED = "0x" + "79" * 20
OPERATOR = "0x" + "90" * 20
OWNER = "0x" + "91" * 20
TOKEN0 = "0x" + "01" * 20
TOKEN1 = "0x" + "02" * 20
STRANGER = "0x" + "99" * 20

TX_HASH = "0x" + "ab" * 32
VOTING_ROUND = 1_042_000
SNAPSHOT_TIMESTAMP = 1_700_000_000


def make_feed(
    alias: str = "WFLR_USDC",
    pool: str = POOL,
    feed: str = FEED,
    decimals0: int = 18,
    decimals1: int = 18,
    invert: bool = False,
) -> FeedConfig:
    return FeedConfig(
        alias=alias,
        name=alias.replace("_", "/"),
        pool_address=pool,
        feed_address=feed,
        token0_decimals=decimals0,
        token1_decimals=decimals1,
        invert_price=invert,
    )


def make_snapshot(
    pool: str = POOL,
    sqrt_price_x96: int = Q96,
    timestamp: int = SNAPSHOT_TIMESTAMP,
    tick: int = 0,
) -> PoolSnapshot:
    return PoolSnapshot(
        pool_address=pool,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        liquidity=10**21,
        token0=TOKEN0,
        token1=TOKEN1,
        timestamp=timestamp,
        block_number=4_200_000,
    )


def make_price_event(
    snapshot: PoolSnapshot | None = None,
    emitter: str = RECORDER,
    log_index: int = 0,
) -> AttestedEvent:
    topics, data = encode_price_recorded(snapshot or make_snapshot())
    return AttestedEvent(
        log_index=log_index, emitter_address=emitter, topics=topics, data=data
    )


def make_response(
    events: tuple[AttestedEvent, ...] | None = None,
    receiving: str = RECORDER,
    status: int = 1,
    voting_round: int = VOTING_ROUND,
    timestamp: int = SNAPSHOT_TIMESTAMP,
) -> AttestationResponse:
    if events is None:
        events = (make_price_event(),)
    return AttestationResponse(
        attestation_type=bytes.fromhex(EVM_TRANSACTION_TYPE[2:]),
        source_id=bytes.fromhex(COSTON2_NETWORK["source_id"][2:]),
        voting_round=voting_round,
        lowest_used_timestamp=timestamp - 3600,
        request_body=RequestBody(
            transaction_hash=bytes.fromhex(TX_HASH[2:]),
            required_confirmations=1,
            provide_input=False,
            list_events=True,
        ),
        response_body=ResponseBody(
            block_number=4_200_000,
            timestamp=timestamp,
            source_address=OPERATOR,
            is_deployment=False,
            receiving_address=receiving,
            value=0,
            input=b"",
            status=status,
            events=events,
        ),
    )


def make_proof(
    response: AttestationResponse | None = None, siblings: int = 4
) -> tuple[Proof, bytes]:
    """A proof for ``response`` inside a tree of unrelated leaves, plus its root."""
    response = response or make_response()
    leaves = [leaf_hash(response)] + [keccak(text=f"leaf-{i}") for i in range(siblings)]
    root, path = root_and_proof(leaves, 0)
    return Proof(merkle_proof=tuple(path), data=response), root


def make_request(tx_hash: str = TX_HASH) -> AttestationRequest:
    return AttestationRequest(
        attestation_type=EVM_TRANSACTION_TYPE,
        source_id=COSTON2_NETWORK["source_id"],
        transaction_hash=tx_hash,
        required_confirmations=1,
        provide_input=False,
        list_events=True,
        abi_encoded_request=b"\x45" * 64,
    )


def make_recording(snapshot: PoolSnapshot | None = None) -> RecordingResult:
    return RecordingResult(
        tx_hash=TX_HASH,
        block_number=4_200_000,
        gas_used=90_000,
        gas_cost_wei=90_000 * 25 * 10**9,
        snapshot=snapshot or make_snapshot(),
    )


def create_mock_services(
    proof: Proof | None = None,
    root: bytes | None = None,
    snapshot: PoolSnapshot | None = None,
) -> MagicMock:
    """Helper to create pipeline services whose every call succeeds."""
    if proof is None:
        proof, root = make_proof()
    snapshot = snapshot or make_snapshot()

    services = MagicMock()

    services.ledger.gas_price = AsyncMock(return_value=25 * 10**9)
    services.ledger.get_balance = AsyncMock(return_value=5 * 10**18)

    services.recorder.address = RECORDER
    services.recorder.can_update = AsyncMock(return_value=True)
    services.recorder.time_until_next_update = AsyncMock(return_value=0)
    services.recorder.record_price = AsyncMock(
        return_value=make_recording(snapshot)
    )

    attestation = services.attestation
    attestation.finalization_timeout = 300
    attestation.prepare = AsyncMock(return_value=make_request())
    attestation.submit = AsyncMock(
        return_value=MagicMock(
            tx_hash="0x" + "cd" * 32,
            voting_round=proof.voting_round,
            fee_wei=10**17,
            gas_cost_wei=10**15,
        )
    )
    attestation.await_finalization = AsyncMock(return_value=True)
    attestation.fetch_proof = AsyncMock(return_value=proof)
    attestation.merkle_root = AsyncMock(return_value=root)

    feed_client = MagicMock()
    feed_client.update_from_proof = AsyncMock(
        return_value=("0x" + "ef" * 32, {"gasUsed": 200_000, "effectiveGasPrice": 25 * 10**9})
    )
    feed_client.read_state = AsyncMock(
        return_value=FeedReading(
            latest_value=1_000_000,
            last_update_timestamp=snapshot.timestamp,
            update_count=1,
            accepting_updates=True,
        )
    )
    services.feed_client.return_value = feed_client
    return services

