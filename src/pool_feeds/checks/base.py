"""Base class for checks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class CheckResult:
    """Result from a check."""

    passed: bool
    message: str
    retry_recommended: bool = False


class BaseCheck(ABC):
    """Base class for all checks."""

    @abstractmethod
    async def run_check(self) -> CheckResult:
        """Execute the check and return result."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this check."""
        pass
