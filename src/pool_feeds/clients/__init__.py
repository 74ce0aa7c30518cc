from .custom_feed import CustomFeedClient, FeedReading
from .ledger import (
    LedgerClient,
    LedgerError,
    TransactionRevertedError,
    TransactionTimeoutError,
)
from .price_recorder import PriceRecorderClient

__all__ = [
    "CustomFeedClient",
    "FeedReading",
    "LedgerClient",
    "LedgerError",
    "TransactionRevertedError",
    "TransactionTimeoutError",
    "PriceRecorderClient",
]
