"""Wire codec for EVMTransaction attestation responses and proofs.

The response is a fixed nested tuple. Field order and array lengths are kept
exactly as received: the verifier hashes ``abi.encode(response)`` to obtain the
Merkle leaf, so any reordering yields an unverifiable proof rather than a
decode error.
"""

from __future__ import annotations

from typing import Any, Mapping

from eth_abi import decode, encode
from eth_utils import keccak, to_bytes
from web3 import Web3

from ..constants import PRICE_RECORDED_TOPIC
from ..domain import (
    AttestationResponse,
    AttestedEvent,
    PoolSnapshot,
    Proof,
    RequestBody,
    ResponseBody,
)

EVENT_TUPLE_TYPE = "(uint32,address,bytes32[],bytes,bool)"
REQUEST_BODY_TUPLE_TYPE = "(bytes32,uint16,bool,bool,uint32[])"
RESPONSE_BODY_TUPLE_TYPE = (
    f"(uint64,uint64,address,bool,address,uint256,bytes,uint8,{EVENT_TUPLE_TYPE}[])"
)
RESPONSE_TUPLE_TYPE = (
    f"(bytes32,bytes32,uint64,uint64,{REQUEST_BODY_TUPLE_TYPE},{RESPONSE_BODY_TUPLE_TYPE})"
)

# Non-indexed fields of PriceRecorded, in declaration order
PRICE_RECORDED_DATA_TYPES = [
    "uint160",
    "int24",
    "uint128",
    "address",
    "address",
    "uint256",
    "uint256",
]


class ProofDecodeError(ValueError):
    """Raised when a proof payload is missing fields or is not valid ABI."""

    retry_recommended = True


def _hex_to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return to_bytes(hexstr=value)


def _address(value: str) -> str:
    return Web3.to_checksum_address(value)


def _event_from_tuple(raw: tuple) -> AttestedEvent:
    log_index, emitter, topics, data, removed = raw
    return AttestedEvent(
        log_index=log_index,
        emitter_address=_address(emitter),
        topics=tuple(bytes(t) for t in topics),
        data=bytes(data),
        removed=removed,
    )


def _event_to_tuple(event: AttestedEvent) -> tuple:
    return (
        event.log_index,
        event.emitter_address,
        list(event.topics),
        event.data,
        event.removed,
    )


def response_from_tuple(raw: tuple) -> AttestationResponse:
    """Build an ``AttestationResponse`` from the decoded RESPONSE tuple."""
    attestation_type, source_id, voting_round, lowest_used, request, response = raw
    tx_hash, confirmations, provide_input, list_events, log_indices = request
    (
        block_number,
        timestamp,
        source_address,
        is_deployment,
        receiving_address,
        value,
        input_data,
        status,
        events,
    ) = response

    return AttestationResponse(
        attestation_type=bytes(attestation_type),
        source_id=bytes(source_id),
        voting_round=voting_round,
        lowest_used_timestamp=lowest_used,
        request_body=RequestBody(
            transaction_hash=bytes(tx_hash),
            required_confirmations=confirmations,
            provide_input=provide_input,
            list_events=list_events,
            log_indices=tuple(log_indices),
        ),
        response_body=ResponseBody(
            block_number=block_number,
            timestamp=timestamp,
            source_address=_address(source_address),
            is_deployment=is_deployment,
            receiving_address=_address(receiving_address),
            value=value,
            input=bytes(input_data),
            status=status,
            events=tuple(_event_from_tuple(e) for e in events),
        ),
    )


def response_to_tuple(response: AttestationResponse) -> tuple:
    """Inverse of ``response_from_tuple``; the result is accepted by eth_abi and web3."""
    req = response.request_body
    body = response.response_body
    return (
        response.attestation_type,
        response.source_id,
        response.voting_round,
        response.lowest_used_timestamp,
        (
            req.transaction_hash,
            req.required_confirmations,
            req.provide_input,
            req.list_events,
            list(req.log_indices),
        ),
        (
            body.block_number,
            body.timestamp,
            body.source_address,
            body.is_deployment,
            body.receiving_address,
            body.value,
            body.input,
            body.status,
            [_event_to_tuple(e) for e in body.events],
        ),
    )


def decode_response(data: str | bytes) -> AttestationResponse:
    """Decode ``abi.encode(response)`` bytes (or 0x-hex) into a response."""
    try:
        (raw,) = decode([RESPONSE_TUPLE_TYPE], _hex_to_bytes(data))
    except Exception as e:
        raise ProofDecodeError(f"Malformed attestation response: {e}") from e
    return response_from_tuple(raw)


def encode_response(response: AttestationResponse) -> bytes:
    return encode([RESPONSE_TUPLE_TYPE], [response_to_tuple(response)])


def leaf_hash(response: AttestationResponse) -> bytes:
    """Merkle leaf for a response: keccak256(abi.encode(response))."""
    return keccak(encode_response(response))


def proof_from_da_payload(payload: Mapping[str, Any]) -> Proof:
    """Build a ``Proof`` from the DA layer's ``proof-by-request-round-raw`` body.

    Raises:
        ProofDecodeError: If ``response_hex`` is missing or not a valid response.
    """
    response_hex = payload.get("response_hex")
    if not response_hex:
        raise ProofDecodeError("DA layer response has no response_hex")
    siblings = payload.get("proof") or []
    try:
        merkle_proof = tuple(_hex_to_bytes(s) for s in siblings)
    except (TypeError, ValueError) as e:
        raise ProofDecodeError(f"Malformed Merkle proof: {e}") from e
    if any(len(s) != 32 for s in merkle_proof):
        raise ProofDecodeError("Merkle proof entries must be 32 bytes")
    return Proof(merkle_proof=merkle_proof, data=decode_response(response_hex))


def proof_to_contract_args(proof: Proof) -> tuple:
    """The ``(bytes32[] merkleProof, Response data)`` struct for ``updateFromProof``."""
    return (list(proof.merkle_proof), response_to_tuple(proof.data))


def _topic_address(topic: bytes) -> str:
    return _address("0x" + topic[-20:].hex())


def encode_price_recorded(snapshot: PoolSnapshot) -> tuple[tuple[bytes, ...], bytes]:
    """Topics and data of the PriceRecorded log for ``snapshot``."""
    pool_topic = bytes(12) + bytes.fromhex(snapshot.pool_address[2:])
    data = encode(
        PRICE_RECORDED_DATA_TYPES,
        [
            snapshot.sqrt_price_x96,
            snapshot.tick,
            snapshot.liquidity,
            snapshot.token0,
            snapshot.token1,
            snapshot.timestamp,
            snapshot.block_number,
        ],
    )
    return (PRICE_RECORDED_TOPIC, pool_topic), data


def decode_price_recorded(event: AttestedEvent) -> PoolSnapshot:
    """Decode a PriceRecorded event carried inside a proof.

    Raises:
        ProofDecodeError: If the event lacks the pool topic or its data is malformed.
    """
    if len(event.topics) < 2:
        raise ProofDecodeError("PriceRecorded event is missing the pool topic")
    try:
        (
            sqrt_price_x96,
            tick,
            liquidity,
            token0,
            token1,
            timestamp,
            block_number,
        ) = decode(PRICE_RECORDED_DATA_TYPES, event.data)
    except Exception as e:
        raise ProofDecodeError(f"Malformed PriceRecorded data: {e}") from e
    return PoolSnapshot(
        pool_address=_topic_address(event.topics[1]),
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        liquidity=liquidity,
        token0=_address(token0),
        token1=_address(token1),
        timestamp=timestamp,
        block_number=block_number,
    )
