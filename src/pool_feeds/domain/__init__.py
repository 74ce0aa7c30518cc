"""Domain models shared by the pipeline, the proof codec and the oracle model."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeedConfig:
    """Static per-feed configuration, fixed for the lifetime of a feed contract."""

    alias: str
    name: str
    pool_address: str
    feed_address: str
    token0_decimals: int
    token1_decimals: int
    invert_price: bool = False


@dataclass(frozen=True)
class PoolSnapshot:
    """Pool state captured by a price-recording transaction."""

    pool_address: str
    sqrt_price_x96: int
    tick: int
    liquidity: int
    token0: str
    token1: str
    timestamp: int
    block_number: int


@dataclass(frozen=True)
class AttestationRequest:
    """An EVMTransaction attestation request as returned by the verifier.

    ``abi_encoded_request`` already carries the message-integrity code and is the
    exact payload submitted to the hub and later echoed to the DA layer.
    """

    attestation_type: str
    source_id: str
    transaction_hash: str
    required_confirmations: int
    provide_input: bool
    list_events: bool
    abi_encoded_request: bytes
    log_indices: tuple[int, ...] = ()


@dataclass(frozen=True)
class AttestedEvent:
    log_index: int
    emitter_address: str
    topics: tuple[bytes, ...]
    data: bytes
    removed: bool = False


@dataclass(frozen=True)
class RequestBody:
    transaction_hash: bytes
    required_confirmations: int
    provide_input: bool
    list_events: bool
    log_indices: tuple[int, ...] = ()


@dataclass(frozen=True)
class ResponseBody:
    block_number: int
    timestamp: int
    source_address: str
    is_deployment: bool
    receiving_address: str
    value: int
    input: bytes
    status: int
    events: tuple[AttestedEvent, ...] = ()


@dataclass(frozen=True)
class AttestationResponse:
    """The attested response, field-for-field in wire order."""

    attestation_type: bytes
    source_id: bytes
    voting_round: int
    lowest_used_timestamp: int
    request_body: RequestBody
    response_body: ResponseBody


@dataclass(frozen=True)
class Proof:
    """Merkle path plus the attested response it proves."""

    merkle_proof: tuple[bytes, ...]
    data: AttestationResponse

    @property
    def voting_round(self) -> int:
        return self.data.voting_round


@dataclass(frozen=True)
class RecordingResult:
    """Outcome of a successful ``recordPrice`` transaction."""

    tx_hash: str
    block_number: int
    gas_used: int
    gas_cost_wei: int
    snapshot: PoolSnapshot | None = None


@dataclass(frozen=True)
class FeedUpdated:
    """Notification emitted by a feed on every committed update."""

    value: int
    timestamp: int
    sqrt_price_x96: int
    tick: int
    update_count: int


@dataclass
class OracleState:
    """Mutable committed state of one feed. Only verify-and-commit mutates it."""

    latest_value: int = 0
    last_update_timestamp: int = 0
    update_count: int = 0
    accepting_updates: bool = True
    emitted: list[FeedUpdated] = field(default_factory=list)
