from .errors import (
    EventNotFound,
    InvalidPrice,
    InvalidProof,
    ProofRejected,
    SourceTxFailed,
    Unauthorized,
    UpdatesPaused,
    WrongContract,
    WrongPool,
)
from .feed import (
    MerkleRootSource,
    PoolPriceFeed,
    StaticMerkleRoots,
    derive_feed_id,
    find_price_event,
    validate_proof,
)

__all__ = [
    "EventNotFound",
    "InvalidPrice",
    "InvalidProof",
    "ProofRejected",
    "SourceTxFailed",
    "Unauthorized",
    "UpdatesPaused",
    "WrongContract",
    "WrongPool",
    "MerkleRootSource",
    "PoolPriceFeed",
    "StaticMerkleRoots",
    "derive_feed_id",
    "find_price_event",
    "validate_proof",
]
