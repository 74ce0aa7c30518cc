"""Thin JSON-RPC wrapper: contract reads, signed transactions and receipts."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import URI, ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction
from web3.exceptions import TimeExhausted, Web3Exception
from web3.types import TxReceipt

from ..settings import FeedsSettings

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when an RPC call or transaction fails."""

    def __init__(self, message: str, retry_recommended: bool = True):
        super().__init__(message)
        self.retry_recommended = retry_recommended


class TransactionTimeoutError(LedgerError):
    """The transaction was not included before the receipt timeout."""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(
            f"Transaction {tx_hash} not mined within {timeout:.0f}s",
            retry_recommended=True,
        )
        self.tx_hash = tx_hash


class TransactionRevertedError(LedgerError):
    """The transaction was mined with status 0."""

    def __init__(self, tx_hash: str, receipt: TxReceipt):
        super().__init__(f"Transaction {tx_hash} reverted", retry_recommended=False)
        self.tx_hash = tx_hash
        self.receipt = receipt


RPC_ERRORS = (Web3Exception, ValueError, requests.exceptions.RequestException)


class LedgerClient:
    """Owns the signing account and its nonce sequence.

    Web3 calls are blocking and run through ``asyncio.to_thread``.
    """

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount | None,
        receipt_timeout: float = 300.0,
        poll_latency: float = 2.0,
    ):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

    @classmethod
    def from_settings(
        cls, settings: FeedsSettings, read_only: bool = False
    ) -> "LedgerClient":
        """Build a client for the configured RPC.

        ``read_only`` clients need no private key and cannot send transactions.
        """
        w3 = Web3(
            Web3.HTTPProvider(
                URI(settings.rpc_url_resolved),
                request_kwargs={"timeout": settings.http_timeout_seconds},
            )
        )
        account: LocalAccount | None = None
        if not read_only:
            account = Account.from_key(settings.private_key_required)
        return cls(w3, account, receipt_timeout=settings.tx_timeout_seconds)

    @property
    def account_required(self) -> LocalAccount:
        if self.account is None:
            raise RuntimeError("private_key must be configured to sign transactions")
        return self.account

    @property
    def address(self) -> ChecksumAddress:
        return self.account_required.address

    def contract(self, address: str, abi: list[dict]) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def call(self, fn: ContractFunction, **kwargs: Any) -> Any:
        """Execute a view call."""
        return await asyncio.to_thread(fn.call, **kwargs)

    async def chain_id(self) -> int:
        return await asyncio.to_thread(lambda: self.w3.eth.chain_id)

    async def gas_price(self) -> int:
        return await asyncio.to_thread(lambda: self.w3.eth.gas_price)

    async def get_balance(self, address: str | None = None) -> int:
        target = Web3.to_checksum_address(address) if address else self.address
        return await asyncio.to_thread(self.w3.eth.get_balance, target)

    async def block_timestamp(self, block_number: int) -> int:
        block = await asyncio.to_thread(self.w3.eth.get_block, block_number)
        return int(block["timestamp"])

    async def send(
        self,
        fn: ContractFunction,
        *,
        gas: int,
        value: int = 0,
        gas_price: int | None = None,
    ) -> str:
        """Sign and broadcast a contract call; return the transaction hash."""

        def _build_and_send() -> HexBytes:
            params: dict[str, Any] = {
                "from": self.address,
                "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
                "gas": gas,
                "gasPrice": gas_price if gas_price is not None else self.w3.eth.gas_price,
                "value": value,
            }
            tx = fn.build_transaction(params)
            signed = self.account_required.sign_transaction(tx)
            return self.w3.eth.send_raw_transaction(signed.raw_transaction)

        try:
            tx_hash = await asyncio.to_thread(_build_and_send)
        except RPC_ERRORS as e:
            raise LedgerError(f"Failed to send {fn.fn_name}: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.debug("Sent %s: %s", fn.fn_name, tx_hex)
        return tx_hex

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Wait for inclusion, bounded by ``receipt_timeout``.

        Raises:
            TransactionTimeoutError: Not mined in time.
            TransactionRevertedError: Mined with status 0.
        """
        try:
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt,
                HexBytes(tx_hash),
                timeout=self.receipt_timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted as e:
            raise TransactionTimeoutError(tx_hash, self.receipt_timeout) from e
        except RPC_ERRORS as e:
            raise LedgerError(f"Failed waiting for {tx_hash}: {e}") from e

        if receipt["status"] != 1:
            raise TransactionRevertedError(tx_hash, receipt)
        return receipt

    async def transact(
        self,
        fn: ContractFunction,
        *,
        gas: int,
        value: int = 0,
        gas_price: int | None = None,
    ) -> tuple[str, TxReceipt]:
        """``send`` followed by ``wait_for_receipt``."""
        tx_hash = await self.send(fn, gas=gas, value=value, gas_price=gas_price)
        receipt = await self.wait_for_receipt(tx_hash)
        return tx_hash, receipt
