"""Client for the attestation network: verifier, hub, relay and DA layer."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import backoff
import requests
from eth_utils import to_bytes
from web3 import Web3

from ..abi import load_fdc_hub_abi, load_fee_config_abi, load_relay_abi
from ..clients.ledger import (
    RPC_ERRORS,
    LedgerClient,
    LedgerError,
    TransactionRevertedError,
)
from ..constants import DA_PROOF_PATH, EVM_TRANSACTION_TYPE, FDC_PROTOCOL_ID
from ..domain import AttestationRequest, Proof
from ..logger import get_logger
from ..proof.codec import ProofDecodeError, proof_from_da_payload
from ..settings import FeedsSettings

logger = get_logger(__name__)

RETRYABLE_HTTP_STATUSES = {429, 500, 502, 503, 504}


class AttestationError(Exception):
    """Base class for attestation failures."""

    def __init__(self, message: str, retry_recommended: bool = True):
        super().__init__(message)
        self.retry_recommended = retry_recommended


class VerifierError(AttestationError):
    """The verifier could not prepare the request."""


class AttestationSubmissionError(AttestationError):
    """``requestAttestation`` could not be submitted or reverted."""


class FinalizationTimeoutError(AttestationError):
    """The voting round did not finalize before the deadline."""

    def __init__(self, voting_round: int, timeout: float):
        super().__init__(
            f"Voting round {voting_round} not finalized within {timeout:.0f}s",
            retry_recommended=True,
        )
        self.voting_round = voting_round


class ProofUnavailableError(AttestationError):
    """The DA layer returned no proof, or a malformed one."""


@dataclass(frozen=True)
class Submission:
    tx_hash: str
    voting_round: int
    fee_wei: int
    gas_cost_wei: int


def _giveup_http(e: Exception) -> bool:
    return (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRYABLE_HTTP_STATUSES
    )


@backoff.on_exception(
    backoff.expo,
    requests.exceptions.RequestException,
    max_tries=3,
    giveup=_giveup_http,
    jitter=backoff.full_jitter,
)
async def _post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout: float = 30.0,
) -> Any:
    response = await asyncio.to_thread(
        requests.post, url, json=payload, headers=headers, timeout=timeout
    )
    response.raise_for_status()
    return response.json()


class AttestationClient:
    """Four-phase EVMTransaction attestation client.

    ``prepare`` -> ``submit`` -> ``await_finalization`` -> ``fetch_proof``. Each
    phase is a separate call so a caller can report progress or abandon the
    request between phases.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        fdc_hub: str,
        relay: str,
        verifier_url: str,
        da_layer_url: str,
        source_id: str,
        verifier_api_key: str,
        gas_limit: int = 500_000,
        fallback_fee_wei: int = 5 * 10**17,
        finalization_timeout: float = 300.0,
        poll_interval: float = 10.0,
        settle_delay: float = 30.0,
        http_timeout: float = 30.0,
        required_confirmations: int = 1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ledger = ledger
        self.hub = ledger.contract(fdc_hub, load_fdc_hub_abi())
        self.relay = ledger.contract(relay, load_relay_abi())
        self.verifier_url = verifier_url
        self.da_layer_url = da_layer_url.rstrip("/")
        self.source_id = source_id
        self.verifier_api_key = verifier_api_key
        self.gas_limit = gas_limit
        self.fallback_fee_wei = fallback_fee_wei
        self.finalization_timeout = finalization_timeout
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay
        self.http_timeout = http_timeout
        self.required_confirmations = required_confirmations
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(
        cls, settings: FeedsSettings, ledger: LedgerClient
    ) -> "AttestationClient":
        return cls(
            ledger,
            fdc_hub=settings.fdc_hub_resolved,
            relay=settings.relay_resolved,
            verifier_url=settings.verifier_url_resolved,
            da_layer_url=settings.da_layer_url_resolved,
            source_id=settings.source_id,
            verifier_api_key=settings.verifier_api_key.get_secret_value(),
            gas_limit=settings.attestation_gas_limit,
            fallback_fee_wei=settings.fallback_fee_wei,
            finalization_timeout=settings.finalization_timeout_seconds,
            poll_interval=settings.finalization_poll_seconds,
            settle_delay=settings.da_settle_delay_seconds,
            http_timeout=settings.http_timeout_seconds,
            required_confirmations=settings.required_confirmations,
        )

    # --- phase 1 ---

    async def prepare(self, tx_hash: str) -> AttestationRequest:
        """Have the verifier build the request and embed its integrity code."""
        body = {
            "attestationType": EVM_TRANSACTION_TYPE,
            "sourceId": self.source_id,
            "requestBody": {
                "transactionHash": tx_hash,
                "requiredConfirmations": str(self.required_confirmations),
                "provideInput": False,
                "listEvents": True,
                "logIndices": [],
            },
        }
        headers = {
            "X-API-KEY": self.verifier_api_key,
            "Content-Type": "application/json",
        }
        try:
            data = await _post_json(
                self.verifier_url, body, headers=headers, timeout=self.http_timeout
            )
        except requests.exceptions.RequestException as e:
            raise VerifierError(f"Verifier request failed: {e}") from e

        encoded = data.get("abiEncodedRequest") if isinstance(data, dict) else None
        if not encoded:
            status = data.get("status") if isinstance(data, dict) else None
            raise VerifierError(
                f"Verifier returned no abiEncodedRequest (status: {status})"
            )

        return AttestationRequest(
            attestation_type=EVM_TRANSACTION_TYPE,
            source_id=self.source_id,
            transaction_hash=tx_hash,
            required_confirmations=self.required_confirmations,
            provide_input=False,
            list_events=True,
            abi_encoded_request=to_bytes(hexstr=encoded),
        )

    # --- phase 2 ---

    async def request_fee(self, request: AttestationRequest) -> int:
        """Current hub fee for ``request``; the fallback fee if it cannot be read."""
        try:
            fee_config = await self.ledger.call(
                self.hub.functions.fdcRequestFeeConfigurations()
            )
            contract = self.ledger.contract(fee_config, load_fee_config_abi())
            fee = await self.ledger.call(
                contract.functions.getRequestFee(request.abi_encoded_request)
            )
            return int(fee)
        except RPC_ERRORS as e:
            logger.warning(
                "Fee query failed, using fallback fee %d wei: %s",
                self.fallback_fee_wei,
                e,
            )
            return self.fallback_fee_wei

    async def submit(self, request: AttestationRequest) -> Submission:
        """Pay the fee, submit the request and derive its voting round.

        Raises:
            AttestationSubmissionError: The hub transaction failed or reverted.
        """
        fee = await self.request_fee(request)
        fn = self.hub.functions.requestAttestation(request.abi_encoded_request)
        try:
            tx_hash, receipt = await self.ledger.transact(
                fn, gas=self.gas_limit, value=fee
            )
        except TransactionRevertedError as e:
            raise AttestationSubmissionError(
                f"requestAttestation reverted ({e.tx_hash}); check fee or request format",
                retry_recommended=False,
            ) from e
        except LedgerError as e:
            raise AttestationSubmissionError(
                f"requestAttestation failed: {e}",
                retry_recommended=e.retry_recommended,
            ) from e

        try:
            block_timestamp = await self.ledger.block_timestamp(
                int(receipt["blockNumber"])
            )
            voting_round = int(
                await self.ledger.call(
                    self.relay.functions.getVotingRoundId(block_timestamp)
                )
            )
        except RPC_ERRORS as e:
            raise AttestationError(
                f"Could not resolve voting round for {tx_hash}: {e}"
            ) from e
        gas_cost = int(receipt["gasUsed"]) * int(receipt.get("effectiveGasPrice") or 0)
        logger.info(
            "Attestation requested in %s (round %d, fee %d wei)",
            tx_hash,
            voting_round,
            fee,
        )
        return Submission(
            tx_hash=tx_hash,
            voting_round=voting_round,
            fee_wei=fee,
            gas_cost_wei=gas_cost,
        )

    # --- phase 3 ---

    async def is_finalized(self, voting_round: int) -> bool:
        fn = self.relay.functions.isFinalized(FDC_PROTOCOL_ID, voting_round)
        return bool(await self.ledger.call(fn))

    async def await_finalization(
        self, voting_round: int, deadline: float | None = None
    ) -> bool:
        """Poll the relay until ``voting_round`` is finalized.

        Returns False once ``deadline`` seconds (default: the configured
        finalization timeout) have elapsed. RPC errors while polling are logged
        and polling continues.
        """
        timeout = self.finalization_timeout if deadline is None else deadline
        start = self._clock()
        while True:
            try:
                if await self.is_finalized(voting_round):
                    logger.info(
                        "Round %d finalized after %.0fs",
                        voting_round,
                        self._clock() - start,
                    )
                    return True
            except RPC_ERRORS as e:
                logger.warning("isFinalized(%d) failed: %s", voting_round, e)

            remaining = timeout - (self._clock() - start)
            if remaining <= 0:
                return False
            logger.debug(
                "Round %d not finalized yet (%.0fs elapsed)",
                voting_round,
                self._clock() - start,
            )
            await self._sleep(min(self.poll_interval, remaining))

    # --- phase 4 ---

    async def fetch_proof(self, voting_round: int, request: AttestationRequest) -> Proof:
        """Wait for DA replication, then download the proof.

        Raises:
            ProofUnavailableError: Request failed or the body is not a valid proof.
        """
        if self.settle_delay > 0:
            logger.debug("Waiting %.0fs for DA layer sync", self.settle_delay)
            await self._sleep(self.settle_delay)

        payload = {
            "votingRoundId": voting_round,
            "requestBytes": Web3.to_hex(request.abi_encoded_request),
        }
        try:
            data = await _post_json(
                f"{self.da_layer_url}{DA_PROOF_PATH}",
                payload,
                headers={"Content-Type": "application/json"},
                timeout=self.http_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ProofUnavailableError(f"DA layer request failed: {e}") from e

        if not isinstance(data, dict):
            raise ProofUnavailableError("DA layer returned a non-object body")
        try:
            proof = proof_from_da_payload(data)
        except ProofDecodeError as e:
            raise ProofUnavailableError(str(e)) from e

        if proof.voting_round != voting_round:
            raise ProofUnavailableError(
                f"DA layer returned round {proof.voting_round}, expected {voting_round}"
            )
        return proof

    async def merkle_root(self, voting_round: int) -> bytes | None:
        """Root published by the relay for ``voting_round``; None if unset."""
        root = await self.ledger.call(
            self.relay.functions.merkleRoots(FDC_PROTOCOL_ID, voting_round)
        )
        root = bytes(root)
        return None if root == bytes(32) else root
