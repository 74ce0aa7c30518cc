from __future__ import annotations

from web3 import Web3
from web3.logs import DISCARD
from web3.types import TxReceipt

from ..abi import load_price_recorder_abi
from ..domain import PoolSnapshot, RecordingResult
from ..logger import get_logger
from .ledger import LedgerClient

logger = get_logger(__name__)


class PriceRecorderClient:
    """Source-recorder contract: eligibility views and ``recordPrice``."""

    def __init__(self, ledger: LedgerClient, address: str, gas_limit: int = 150_000):
        self.ledger = ledger
        self.address = Web3.to_checksum_address(address)
        self.gas_limit = gas_limit
        self.contract = ledger.contract(self.address, load_price_recorder_abi())

    async def is_recording(self) -> bool:
        return bool(await self.ledger.call(self.contract.functions.isRecording()))

    async def is_pool_enabled(self, pool: str) -> bool:
        fn = self.contract.functions.enabledPools(Web3.to_checksum_address(pool))
        return bool(await self.ledger.call(fn))

    async def can_update(self, pool: str) -> bool:
        fn = self.contract.functions.canUpdate(Web3.to_checksum_address(pool))
        return bool(await self.ledger.call(fn))

    async def time_until_next_update(self, pool: str) -> int:
        fn = self.contract.functions.timeUntilNextUpdate(Web3.to_checksum_address(pool))
        return int(await self.ledger.call(fn))

    async def update_interval(self) -> int:
        return int(await self.ledger.call(self.contract.functions.updateInterval()))

    def parse_snapshot(self, receipt: TxReceipt) -> PoolSnapshot | None:
        """Decode the first PriceRecorded log of ``receipt``, if any."""
        events = self.contract.events.PriceRecorded().process_receipt(
            receipt, errors=DISCARD
        )
        if not events:
            return None
        args = events[0]["args"]
        return PoolSnapshot(
            pool_address=Web3.to_checksum_address(args["pool"]),
            sqrt_price_x96=int(args["sqrtPriceX96"]),
            tick=int(args["tick"]),
            liquidity=int(args["liquidity"]),
            token0=Web3.to_checksum_address(args["token0"]),
            token1=Web3.to_checksum_address(args["token1"]),
            timestamp=int(args["timestamp"]),
            block_number=int(args["blockNumber"]),
        )

    async def record_price(self, pool: str, gas_price: int | None = None) -> RecordingResult:
        """Send ``recordPrice(pool)`` and wait for inclusion."""
        fn = self.contract.functions.recordPrice(Web3.to_checksum_address(pool))
        tx_hash, receipt = await self.ledger.transact(
            fn, gas=self.gas_limit, gas_price=gas_price
        )
        gas_used = int(receipt["gasUsed"])
        effective_price = int(receipt.get("effectiveGasPrice") or gas_price or 0)
        snapshot = self.parse_snapshot(receipt)
        if snapshot is None:
            logger.warning("No PriceRecorded event in receipt of %s", tx_hash)
        return RecordingResult(
            tx_hash=tx_hash,
            block_number=int(receipt["blockNumber"]),
            gas_used=gas_used,
            gas_cost_wei=gas_used * effective_price,
            snapshot=snapshot,
        )
