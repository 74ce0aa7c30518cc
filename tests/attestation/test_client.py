# tests/attestation/test_client.py

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from builders import TX_HASH, VOTING_ROUND, make_proof, make_request
from pool_feeds.attestation.client import (
    AttestationClient,
    AttestationError,
    AttestationSubmissionError,
    ProofUnavailableError,
    VerifierError,
)
from pool_feeds.clients.ledger import TransactionRevertedError, TransactionTimeoutError
from pool_feeds.constants import DA_PROOF_PATH, EVM_TRANSACTION_TYPE, FDC_PROTOCOL_ID
from pool_feeds.proof.codec import encode_response

POST_JSON = "pool_feeds.attestation.client._post_json"
FEE_CONFIG = "0x" + "fe" * 20


class FakeClock:
    """Monotonic clock advanced only by the injected sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def create_mock_ledger():
    """Helper to create a ledger whose contract calls are scripted per test."""
    ledger = MagicMock()
    ledger.contract.side_effect = lambda address, abi: MagicMock(name=address)
    ledger.call = AsyncMock()
    ledger.transact = AsyncMock(
        return_value=(
            "0x" + "cd" * 32,
            {"blockNumber": 4_200_001, "gasUsed": 120_000, "effectiveGasPrice": 25 * 10**9},
        )
    )
    ledger.block_timestamp = AsyncMock(return_value=1_700_000_090)
    return ledger


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger():
    return create_mock_ledger()


@pytest.fixture
def client(ledger, clock):
    return AttestationClient(
        ledger,
        fdc_hub="0x" + "48" * 20,
        relay="0x" + "5c" * 20,
        verifier_url="https://verifier.example/EVMTransaction/prepareRequest",
        da_layer_url="https://da.example/",
        source_id="0x" + "74" * 32,
        verifier_api_key="test-key",
        fallback_fee_wei=5 * 10**17,
        finalization_timeout=30,
        poll_interval=10,
        settle_delay=30,
        sleep=clock.sleep,
        clock=clock,
    )


# --- prepare ---


@pytest.mark.asyncio
async def test_prepare_posts_canonical_request(client):
    encoded = "0x" + "ab" * 96
    with patch(POST_JSON, new=AsyncMock(return_value={"status": "VALID", "abiEncodedRequest": encoded})) as post:
        request = await client.prepare(TX_HASH)

    url, body = post.await_args.args[:2]
    assert url == "https://verifier.example/EVMTransaction/prepareRequest"
    assert body == {
        "attestationType": EVM_TRANSACTION_TYPE,
        "sourceId": "0x" + "74" * 32,
        "requestBody": {
            "transactionHash": TX_HASH,
            "requiredConfirmations": "1",
            "provideInput": False,
            "listEvents": True,
            "logIndices": [],
        },
    }
    assert post.await_args.kwargs["headers"]["X-API-KEY"] == "test-key"
    assert request.abi_encoded_request == bytes.fromhex("ab" * 96)
    assert request.transaction_hash == TX_HASH
    assert request.list_events is True


@pytest.mark.asyncio
async def test_prepare_without_encoded_request_raises(client):
    with patch(POST_JSON, new=AsyncMock(return_value={"status": "INVALID"})):
        with pytest.raises(VerifierError, match="INVALID") as exc_info:
            await client.prepare(TX_HASH)
    assert exc_info.value.retry_recommended is True


@pytest.mark.asyncio
async def test_prepare_http_failure_raises(client):
    with patch(POST_JSON, new=AsyncMock(side_effect=requests.exceptions.ConnectionError("refused"))):
        with pytest.raises(VerifierError, match="refused"):
            await client.prepare(TX_HASH)


# --- submit ---


@pytest.mark.asyncio
async def test_submit_pays_dynamic_fee_and_resolves_round(client, ledger):
    ledger.call.side_effect = [FEE_CONFIG, 10**18, VOTING_ROUND]
    request = make_request()

    submission = await client.submit(request)

    assert submission.voting_round == VOTING_ROUND
    assert submission.fee_wei == 10**18
    assert submission.gas_cost_wei == 120_000 * 25 * 10**9
    assert ledger.transact.await_args.kwargs["value"] == 10**18
    client.hub.functions.requestAttestation.assert_called_once_with(
        request.abi_encoded_request
    )
    ledger.block_timestamp.assert_awaited_once_with(4_200_001)
    client.relay.functions.getVotingRoundId.assert_called_once_with(1_700_000_090)


@pytest.mark.asyncio
async def test_fee_read_failure_uses_fallback(client, ledger):
    ledger.call.side_effect = [Web3Exception("execution reverted"), VOTING_ROUND]

    submission = await client.submit(make_request())

    assert submission.fee_wei == 5 * 10**17
    assert ledger.transact.await_args.kwargs["value"] == 5 * 10**17


@pytest.mark.asyncio
async def test_reverted_submission_is_not_retryable(client, ledger):
    ledger.call.side_effect = [FEE_CONFIG, 10**18]
    ledger.transact.side_effect = TransactionRevertedError("0xdead", {"status": 0})

    with pytest.raises(AttestationSubmissionError) as exc_info:
        await client.submit(make_request())
    assert exc_info.value.retry_recommended is False


@pytest.mark.asyncio
async def test_unmined_submission_is_retryable(client, ledger):
    ledger.call.side_effect = [FEE_CONFIG, 10**18]
    ledger.transact.side_effect = TransactionTimeoutError("0xdead", 300)

    with pytest.raises(AttestationSubmissionError) as exc_info:
        await client.submit(make_request())
    assert exc_info.value.retry_recommended is True


@pytest.mark.asyncio
async def test_round_lookup_failure_is_retryable(client, ledger):
    ledger.call.side_effect = [FEE_CONFIG, 10**18]
    ledger.block_timestamp.side_effect = Web3Exception("block not found")

    with pytest.raises(AttestationError) as exc_info:
        await client.submit(make_request())
    assert exc_info.value.retry_recommended is True


# --- finalization ---


@pytest.mark.asyncio
async def test_await_finalization_polls_until_finalized(client, ledger, clock):
    ledger.call.side_effect = [False, False, True]

    assert await client.await_finalization(VOTING_ROUND) is True
    assert clock.sleeps == [10, 10]
    client.relay.functions.isFinalized.assert_called_with(FDC_PROTOCOL_ID, VOTING_ROUND)


@pytest.mark.asyncio
async def test_await_finalization_times_out(client, ledger, clock):
    ledger.call.return_value = False

    assert await client.await_finalization(VOTING_ROUND) is False
    assert sum(clock.sleeps) == 30
    assert ledger.call.await_count == 4


@pytest.mark.asyncio
async def test_await_finalization_honours_explicit_deadline(client, ledger, clock):
    ledger.call.return_value = False

    assert await client.await_finalization(VOTING_ROUND, deadline=15) is False
    assert clock.sleeps == [10, 5]


@pytest.mark.asyncio
async def test_await_finalization_survives_rpc_errors(client, ledger, clock):
    ledger.call.side_effect = [Web3Exception("timeout"), True]

    assert await client.await_finalization(VOTING_ROUND) is True
    assert clock.sleeps == [10]


# --- proof retrieval ---


@pytest.mark.asyncio
async def test_fetch_proof_waits_then_queries_da_layer(client, clock):
    proof, _ = make_proof()
    payload = {
        "response_hex": Web3.to_hex(encode_response(proof.data)),
        "proof": [Web3.to_hex(s) for s in proof.merkle_proof],
    }
    request = make_request()

    with patch(POST_JSON, new=AsyncMock(return_value=payload)) as post:
        fetched = await client.fetch_proof(VOTING_ROUND, request)

    assert fetched == proof
    assert clock.sleeps == [30]
    url, body = post.await_args.args[:2]
    assert url == f"https://da.example{DA_PROOF_PATH}"
    assert body == {
        "votingRoundId": VOTING_ROUND,
        "requestBytes": Web3.to_hex(request.abi_encoded_request),
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"proof": []},
        {"response_hex": "0x1234", "proof": []},
        ["not", "an", "object"],
    ],
    ids=["missing-response", "malformed-response", "non-object"],
)
async def test_fetch_proof_rejects_bad_payloads(client, payload):
    with patch(POST_JSON, new=AsyncMock(return_value=payload)):
        with pytest.raises(ProofUnavailableError) as exc_info:
            await client.fetch_proof(VOTING_ROUND, make_request())
    assert exc_info.value.retry_recommended is True


@pytest.mark.asyncio
async def test_fetch_proof_rejects_other_round(client):
    proof, _ = make_proof()
    payload = {"response_hex": Web3.to_hex(encode_response(proof.data)), "proof": []}

    with patch(POST_JSON, new=AsyncMock(return_value=payload)):
        with pytest.raises(ProofUnavailableError, match="expected"):
            await client.fetch_proof(VOTING_ROUND + 1, make_request())


@pytest.mark.asyncio
async def test_fetch_proof_http_failure(client):
    with patch(POST_JSON, new=AsyncMock(side_effect=requests.exceptions.Timeout("slow"))):
        with pytest.raises(ProofUnavailableError, match="slow"):
            await client.fetch_proof(VOTING_ROUND, make_request())


# --- roots ---


@pytest.mark.asyncio
async def test_merkle_root_unset_is_none(client, ledger):
    ledger.call.return_value = bytes(32)
    assert await client.merkle_root(VOTING_ROUND) is None


@pytest.mark.asyncio
async def test_merkle_root_published(client, ledger):
    ledger.call.return_value = b"\x07" * 32
    assert await client.merkle_root(VOTING_ROUND) == b"\x07" * 32
