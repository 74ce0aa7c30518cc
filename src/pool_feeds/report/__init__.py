from .formatter import build_stats_panel, print_stats
from .stats import FeedStats, SchedulerStats

__all__ = ["build_stats_panel", "print_stats", "FeedStats", "SchedulerStats"]
