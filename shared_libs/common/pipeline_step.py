"""
Step tracking for the file processing workflow.

Each workflow step records its status, timing and error so that the durable
step log can tell which steps of a run already completed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class StepStatus(Enum):
    """Enum for individual step status values."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineStep:
    """A single named step of a pipeline run."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.status = StepStatus.NOT_STARTED
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.error_message: Optional[str] = None
        self.attempts = 0

    def start(self):
        """Mark step as started. Re-running a failed step counts as a new attempt."""
        self.status = StepStatus.IN_PROGRESS
        self.start_time = _now()
        self.end_time = None
        self.error_message = None
        self.attempts += 1

    def complete(self):
        self.status = StepStatus.COMPLETED
        self.end_time = _now()

    def error(self, error_message: str):
        self.status = StepStatus.ERROR
        self.end_time = _now()
        self.error_message = error_message

    def skip(self, reason: str):
        self.status = StepStatus.SKIPPED
        self.end_time = _now()
        self.error_message = reason

    @property
    def duration(self) -> Optional[float]:
        """Step duration in seconds, None until the step has ended."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration,
            "error_message": self.error_message,
            "attempts": self.attempts,
        }

    def restore(self, data: Dict[str, Any]):
        """Restore state saved by to_dict() in a previous invocation."""
        self.status = StepStatus(data.get("status", StepStatus.NOT_STARTED.value))
        start_time = data.get("start_time")
        end_time = data.get("end_time")
        self.start_time = datetime.fromisoformat(start_time) if start_time else None
        self.end_time = datetime.fromisoformat(end_time) if end_time else None
        self.error_message = data.get("error_message")
        self.attempts = data.get("attempts", 0)

    def __str__(self) -> str:
        duration_str = f" ({self.duration:.2f}s)" if self.duration else ""
        return f"{self.name}: {self.status.value}{duration_str}"

    def __repr__(self) -> str:
        return f"PipelineStep(name='{self.name}', status={self.status.value}, attempts={self.attempts})"
