from .codec import (
    RESPONSE_TUPLE_TYPE,
    ProofDecodeError,
    decode_price_recorded,
    decode_response,
    encode_price_recorded,
    encode_response,
    leaf_hash,
    proof_from_da_payload,
    proof_to_contract_args,
)
from .merkle import process_proof, root_and_proof, verify

__all__ = [
    "RESPONSE_TUPLE_TYPE",
    "ProofDecodeError",
    "decode_price_recorded",
    "decode_response",
    "encode_price_recorded",
    "encode_response",
    "leaf_hash",
    "proof_from_da_payload",
    "proof_to_contract_args",
    "process_proof",
    "root_and_proof",
    "verify",
]
