from .attest import attest_recording
from .context import CycleContext, CycleOutcome, PipelineServices, UpdatePhase
from .preflight import run_preflight
from .record import check_eligibility, record_price
from .run import run_feed_cycle
from .services import build_services

__all__ = [
    "attest_recording",
    "CycleContext",
    "CycleOutcome",
    "PipelineServices",
    "UpdatePhase",
    "check_eligibility",
    "record_price",
    "run_preflight",
    "build_services",
    "run_feed_cycle",
]
