import logging

from pool_feeds.logger import TRACE, FeedContextFilter, setup_logging


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("pool_feeds", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_feed_context_is_prefixed_once():
    record = _record("recording", feed="WFLR_USDC")
    feed_filter = FeedContextFilter()

    assert feed_filter.filter(record)
    assert feed_filter.filter(record)
    assert record.msg == "[WFLR_USDC] recording"


def test_records_without_feed_are_untouched():
    record = _record("scheduler started")
    assert FeedContextFilter().filter(record)
    assert record.msg == "scheduler started"


def test_setup_logging_trace_level():
    setup_logging("trace")
    assert logging.getLogger().level == TRACE
    assert logging.getLevelName(TRACE) == "TRACE"


def test_setup_logging_debug_quiets_rpc_loggers():
    setup_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.WARNING
