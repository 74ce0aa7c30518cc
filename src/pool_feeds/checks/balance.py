"""Operator account funding."""

from __future__ import annotations

from enum import Enum

from ..clients.ledger import LedgerClient
from ..constants import WEI_PER_NATIVE
from .base import BaseCheck, CheckResult


class BalanceStatus(str, Enum):
    OK = "ok"
    LOW = "low"
    CRITICAL = "critical"


def classify_balance(balance_wei: int, min_wei: int, critical_wei: int) -> BalanceStatus:
    if balance_wei < critical_wei:
        return BalanceStatus.CRITICAL
    if balance_wei < min_wei:
        return BalanceStatus.LOW
    return BalanceStatus.OK


class BalanceCheck(BaseCheck):
    """Reads the operator balance; fails only when it is below the critical threshold."""

    def __init__(
        self,
        ledger: LedgerClient,
        min_balance_wei: int,
        critical_balance_wei: int,
        symbol: str = "FLR",
    ):
        self.ledger = ledger
        self.min_balance_wei = min_balance_wei
        self.critical_balance_wei = critical_balance_wei
        self.symbol = symbol
        self.status: BalanceStatus | None = None
        self.balance_wei: int | None = None

    @property
    def name(self) -> str:
        return "Balance Check"

    async def run_check(self) -> CheckResult:
        self.balance_wei = await self.ledger.get_balance()
        self.status = classify_balance(
            self.balance_wei, self.min_balance_wei, self.critical_balance_wei
        )
        shown = f"{self.balance_wei / WEI_PER_NATIVE:.4f} {self.symbol}"

        if self.status is BalanceStatus.CRITICAL:
            return CheckResult(
                passed=False,
                message=(
                    f"CRITICAL: balance {shown} below "
                    f"{self.critical_balance_wei / WEI_PER_NATIVE} {self.symbol}"
                ),
            )
        if self.status is BalanceStatus.LOW:
            return CheckResult(passed=True, message=f"LOW BALANCE: {shown}")
        return CheckResult(passed=True, message=f"Balance: {shown}")
