from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from web3 import Web3
from web3.types import TxReceipt

from ..abi import load_custom_feed_abi
from ..domain import Proof
from ..proof.codec import proof_to_contract_args
from .ledger import LedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedReading:
    latest_value: int
    last_update_timestamp: int
    update_count: int
    accepting_updates: bool


class CustomFeedClient:
    """On-ledger pool price feed: ``updateFromProof`` plus its views."""

    def __init__(self, ledger: LedgerClient, address: str, gas_limit: int = 500_000):
        self.ledger = ledger
        self.address = Web3.to_checksum_address(address)
        self.gas_limit = gas_limit
        self.contract = ledger.contract(self.address, load_custom_feed_abi())

    async def update_from_proof(
        self, proof: Proof, gas_price: int | None = None
    ) -> tuple[str, TxReceipt]:
        fn = self.contract.functions.updateFromProof(proof_to_contract_args(proof))
        return await self.ledger.transact(fn, gas=self.gas_limit, gas_price=gas_price)

    async def latest_value(self) -> int:
        return int(await self.ledger.call(self.contract.functions.latestValue()))

    async def last_update_timestamp(self) -> int:
        return int(await self.ledger.call(self.contract.functions.lastUpdateTimestamp()))

    async def update_count(self) -> int:
        return int(await self.ledger.call(self.contract.functions.updateCount()))

    async def accepting_updates(self) -> bool:
        return bool(await self.ledger.call(self.contract.functions.acceptingUpdates()))

    async def feed_id(self) -> bytes:
        return bytes(await self.ledger.call(self.contract.functions.feedId()))

    async def read_state(self) -> FeedReading:
        value, timestamp, count, accepting = await asyncio.gather(
            self.latest_value(),
            self.last_update_timestamp(),
            self.update_count(),
            self.accepting_updates(),
        )
        return FeedReading(
            latest_value=value,
            last_update_timestamp=timestamp,
            update_count=count,
            accepting_updates=accepting,
        )
