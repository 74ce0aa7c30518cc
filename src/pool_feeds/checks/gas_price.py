"""Network gas price ceiling."""

from __future__ import annotations

import logging

from ..clients.ledger import RPC_ERRORS, LedgerClient
from ..constants import WEI_PER_GWEI
from .base import BaseCheck, CheckResult

logger = logging.getLogger(__name__)


class GasPriceCheck(BaseCheck):
    """Passes when the current gas price does not exceed the configured ceiling.

    A gas price that cannot be determined fails the check, so the cycle is
    skipped rather than spending at an unknown price.
    """

    def __init__(self, ledger: LedgerClient, max_gas_price_wei: int):
        self.ledger = ledger
        self.max_gas_price_wei = max_gas_price_wei
        self.last_gas_price: int | None = None

    @property
    def name(self) -> str:
        return "Gas Price Check"

    async def run_check(self) -> CheckResult:
        self.last_gas_price = None
        try:
            gas_price = await self.ledger.gas_price()
        except RPC_ERRORS as e:
            logger.warning("Cannot determine gas price: %s", e)
            return CheckResult(
                passed=False,
                message="Cannot determine gas price",
                retry_recommended=True,
            )

        if not gas_price:
            return CheckResult(
                passed=False,
                message="Cannot determine gas price",
                retry_recommended=True,
            )

        gwei = gas_price / WEI_PER_GWEI
        if gas_price > self.max_gas_price_wei:
            return CheckResult(
                passed=False,
                message=(
                    f"Gas too high ({gwei:.2f} gwei > "
                    f"{self.max_gas_price_wei / WEI_PER_GWEI:.2f} gwei)"
                ),
                retry_recommended=True,
            )

        self.last_gas_price = gas_price
        return CheckResult(passed=True, message=f"Gas price {gwei:.2f} gwei")
