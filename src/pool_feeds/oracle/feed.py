"""Verify-and-commit model of a pool price feed.

``PoolPriceFeed`` mirrors the behaviour of the on-ledger feed contract so the
checks can be run (and tested) off-chain. ``validate_proof`` holds the shared
structural checks and is also used to pre-verify proofs before paying gas to
submit them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from eth_utils import keccak

from ..constants import CUSTOM_FEED_CATEGORY, FEED_DECIMALS, PRICE_RECORDED_TOPIC
from ..domain import (
    AttestedEvent,
    FeedConfig,
    FeedUpdated,
    OracleState,
    PoolSnapshot,
    Proof,
)
from ..logger import get_logger
from ..price_math import PriceComputationError, compute_price
from ..proof.codec import ProofDecodeError, decode_price_recorded, leaf_hash
from ..proof.merkle import verify
from .errors import (
    EventNotFound,
    InvalidPrice,
    InvalidProof,
    SourceTxFailed,
    Unauthorized,
    UpdatesPaused,
    WrongContract,
    WrongPool,
)

logger = get_logger(__name__)

TX_STATUS_SUCCESS = 1


class MerkleRootSource(Protocol):
    def root_for(self, voting_round: int) -> bytes | None: ...


@dataclass
class StaticMerkleRoots:
    """In-memory root table keyed by voting round."""

    roots: dict[int, bytes] = field(default_factory=dict)

    def publish(self, voting_round: int, root: bytes) -> None:
        self.roots[voting_round] = root

    def root_for(self, voting_round: int) -> bytes | None:
        return self.roots.get(voting_round)


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def _topic_is_address(topic: bytes, address: str) -> bool:
    return topic == bytes(12) + bytes.fromhex(address.removeprefix("0x"))


def find_price_event(
    events: Iterable[AttestedEvent],
    recorder: str,
    topic: bytes = PRICE_RECORDED_TOPIC,
) -> AttestedEvent | None:
    """First event emitted by ``recorder`` whose topic0 is ``topic``, or None."""
    for event in events:
        if (
            _same_address(event.emitter_address, recorder)
            and event.topics
            and event.topics[0] == topic
        ):
            return event
    return None


def validate_proof(
    proof: Proof,
    *,
    merkle_root: bytes | None,
    recorder: str,
    pool: str,
) -> PoolSnapshot:
    """Run the structural checks in order and return the attested snapshot.

    Raises:
        InvalidProof: Merkle path does not reach ``merkle_root`` (or no root is known).
        WrongContract: Transaction destination is not ``recorder``.
        SourceTxFailed: Transaction status is not success.
        EventNotFound: No PriceRecorded event from ``recorder``.
        WrongPool: The event's indexed pool is not ``pool``.
    """
    if merkle_root is None or not verify(
        proof.merkle_proof, merkle_root, leaf_hash(proof.data)
    ):
        raise InvalidProof(
            f"Merkle proof does not match the root of voting round {proof.voting_round}"
        )

    body = proof.data.response_body
    if not _same_address(body.receiving_address, recorder):
        raise WrongContract(
            f"Proof targets {body.receiving_address}, expected recorder {recorder}"
        )
    if body.status != TX_STATUS_SUCCESS:
        raise SourceTxFailed(f"Attested transaction has status {body.status}")

    event = find_price_event(body.events, recorder)
    if event is None:
        raise EventNotFound("No PriceRecorded event from the recorder in proof")
    if len(event.topics) < 2 or not _topic_is_address(event.topics[1], pool):
        raise WrongPool(f"PriceRecorded event is not for pool {pool}")

    try:
        return decode_price_recorded(event)
    except ProofDecodeError as e:
        raise EventNotFound(str(e)) from e


def derive_feed_id(name: str) -> bytes:
    """bytes21 feed id: category byte followed by keccak(name)[:20]."""
    return bytes([CUSTOM_FEED_CATEGORY]) + keccak(text=name)[:20]


class PoolPriceFeed:
    """Feed whose only write path is a verified attestation proof."""

    def __init__(
        self,
        config: FeedConfig,
        recorder_address: str,
        merkle_roots: MerkleRootSource,
        owner: str,
    ):
        self.config = config
        self.recorder_address = recorder_address
        self.merkle_roots = merkle_roots
        self.owner = owner
        self.state = OracleState()
        self.feed_id = derive_feed_id(config.name)

    def update_from_proof(self, proof: Proof) -> FeedUpdated:
        """Verify ``proof`` and commit its price.

        Any proof passing the checks is accepted regardless of how its
        timestamp compares to the stored one.
        """
        if not self.state.accepting_updates:
            raise UpdatesPaused(f"{self.config.alias} is not accepting updates")

        snapshot = validate_proof(
            proof,
            merkle_root=self.merkle_roots.root_for(proof.voting_round),
            recorder=self.recorder_address,
            pool=self.config.pool_address,
        )

        try:
            value = compute_price(
                snapshot.sqrt_price_x96,
                self.config.token0_decimals,
                self.config.token1_decimals,
                self.config.invert_price,
            )
        except PriceComputationError as e:
            raise InvalidPrice(str(e)) from e

        self.state.latest_value = value
        self.state.last_update_timestamp = snapshot.timestamp
        self.state.update_count += 1
        notification = FeedUpdated(
            value=value,
            timestamp=snapshot.timestamp,
            sqrt_price_x96=snapshot.sqrt_price_x96,
            tick=snapshot.tick,
            update_count=self.state.update_count,
        )
        self.state.emitted.append(notification)
        logger.debug(
            "Committed %d (update #%d)",
            value,
            self.state.update_count,
            extra={"feed": self.config.alias},
        )
        return notification

    def set_accepting_updates(self, caller: str, accepting: bool) -> None:
        if not _same_address(caller, self.owner):
            raise Unauthorized(f"{caller} is not the owner of {self.config.alias}")
        self.state.accepting_updates = accepting

    # --- views ---

    def read(self) -> int:
        return self.state.latest_value

    @property
    def latest_value(self) -> int:
        return self.state.latest_value

    @property
    def last_update_timestamp(self) -> int:
        return self.state.last_update_timestamp

    @property
    def update_count(self) -> int:
        return self.state.update_count

    @property
    def accepting_updates(self) -> bool:
        return self.state.accepting_updates

    @staticmethod
    def decimals() -> int:
        return FEED_DECIMALS

    @staticmethod
    def calculate_fee() -> int:
        return 0

    def get_current_feed(self) -> tuple[int, int, int]:
        """(value, decimals, timestamp)."""
        return (
            self.state.latest_value,
            FEED_DECIMALS,
            self.state.last_update_timestamp,
        )
