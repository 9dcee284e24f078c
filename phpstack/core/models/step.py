"""
Step records — the outcome contract between steps and the orchestrator.

Steps report what happened by returning records rather than raising:
the orchestrator decides what a failure means for the rest of the run
by looking at the record's outcome.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped-already-present"
    FAILED_NONFATAL = "failed-nonfatal"
    FAILED_FATAL = "failed-fatal"


class StepRecord(BaseModel):
    """Result of one named provisioning step."""

    name: str
    outcome: StepOutcome = StepOutcome.SUCCESS
    message: str = ""

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the step left the system in the desired state."""
        return self.outcome in (StepOutcome.SUCCESS, StepOutcome.SKIPPED)

    @property
    def fatal(self) -> bool:
        return self.outcome == StepOutcome.FAILED_FATAL

    @classmethod
    def success(cls, name: str, message: str = "", **kwargs: Any) -> StepRecord:
        """Create a success record."""
        return cls(name=name, outcome=StepOutcome.SUCCESS, message=message, **kwargs)

    @classmethod
    def skip(cls, name: str, message: str = "", **kwargs: Any) -> StepRecord:
        """Create a skipped-already-present record."""
        return cls(name=name, outcome=StepOutcome.SKIPPED, message=message, **kwargs)

    @classmethod
    def warning(cls, name: str, message: str, **kwargs: Any) -> StepRecord:
        """Create a failed-nonfatal record."""
        return cls(
            name=name, outcome=StepOutcome.FAILED_NONFATAL, message=message, **kwargs
        )

    @classmethod
    def failure(cls, name: str, message: str, **kwargs: Any) -> StepRecord:
        """Create a failed-fatal record."""
        return cls(
            name=name, outcome=StepOutcome.FAILED_FATAL, message=message, **kwargs
        )
