"""Core modules for the migration runner."""

from migrunner.core.models import (
    RunnableUnit,
    RunOutcome,
    RunResult,
    RunState,
    StatusRow,
    TrackedStatus,
)
from migrunner.core.parser import parse_status_line
from migrunner.core.tracker import StatusTracker

__all__ = [
    "RunnableUnit",
    "RunOutcome",
    "RunResult",
    "RunState",
    "StatusRow",
    "StatusTracker",
    "TrackedStatus",
    "parse_status_line",
]
