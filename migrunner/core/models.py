"""Data models for the migration orchestrator.

Uses Pydantic for immutable unit descriptors and run results.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, Enum):
    """Lifecycle state of one orchestration run."""

    IDLE = "idle"
    LAUNCHING = "launching"
    WATCHING = "watching"
    DRAINING = "draining"
    DONE = "done"


class RunOutcome(str, Enum):
    """How a finished run ended."""

    SUCCEEDED = "succeeded"
    LAUNCH_FAILED = "launch_failed"
    CANCELLED = "cancelled"


class RunnableUnit(BaseModel):
    """One external command to run as a child process."""

    model_config = ConfigDict(frozen=True)

    name: str
    working_directory: Path
    command: tuple[str, ...] = Field(min_length=1)

    @property
    def executable(self) -> str:
        return self.command[0]

    @property
    def arguments(self) -> tuple[str, ...]:
        return self.command[1:]


@dataclass
class TrackedStatus:
    """Mutable status record for one launched unit.

    status_text is the only field changed by output lines. exited and
    returncode are bookkeeping written once by the orchestrator.
    """

    name: str
    status_text: str
    handle: Any = None
    exited: bool = False
    returncode: int | None = None


@dataclass(frozen=True)
class StatusRow:
    """Immutable (name, status) pair handed to the view."""

    name: str
    status_text: str


@dataclass
class RunResult:
    """Result of a finished orchestration run."""

    outcome: RunOutcome
    state: RunState = RunState.DONE
    launch_error: Any = None
    launched: list[str] = field(default_factory=list)
    terminated: list[str] = field(default_factory=list)
    returncodes: dict[str, int | None] = field(default_factory=dict)
    final_rows: list[StatusRow] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.SUCCEEDED

    @property
    def failed_units(self) -> list[str]:
        """Names of units that exited with a non-zero code."""
        return [name for name, code in self.returncodes.items() if code not in (0, None)]
