from .balance import BalanceCheck, BalanceStatus, classify_balance
from .base import BaseCheck, CheckResult
from .gas_price import GasPriceCheck
from .interval import UpdateIntervalCheck, format_time_remaining
from .preflight import PreflightError, build_preflight_checks, run_preflight_checks

__all__ = [
    "BalanceCheck",
    "BalanceStatus",
    "classify_balance",
    "BaseCheck",
    "CheckResult",
    "GasPriceCheck",
    "UpdateIntervalCheck",
    "format_time_remaining",
    "PreflightError",
    "build_preflight_checks",
    "run_preflight_checks",
]
