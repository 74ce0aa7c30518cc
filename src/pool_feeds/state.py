"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import FeedsSettings


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed through the scheduler and pipeline to avoid global state and enable testing.
    """

    settings: FeedsSettings
    logger: logging.Logger
