"""Phase Execution Domain Events.

Events emitted while a recovery plan runs, for observability and
analytics. All events are frozen dataclasses with ``to_dict()``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from wsrecovery.domains.shared.kernel import utc_now


@dataclass(frozen=True)
class PhaseStarted:
    """Emitted when a phase passes its prerequisites and starts."""
    session_id: str
    phase_id: str
    execution_id: str
    task_count: int
    parallel: bool
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "phase_started",
            "session_id": self.session_id,
            "phase_id": self.phase_id,
            "execution_id": self.execution_id,
            "task_count": self.task_count,
            "parallel": self.parallel,
        }


@dataclass(frozen=True)
class PhaseCompleted:
    """Emitted when at least one task of the phase succeeded."""
    session_id: str
    phase_id: str
    execution_id: str
    tasks_succeeded: int
    tasks_failed: int
    health_improvement: int
    duration_ms: int
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "phase_completed",
            "session_id": self.session_id,
            "phase_id": self.phase_id,
            "execution_id": self.execution_id,
            "tasks_succeeded": self.tasks_succeeded,
            "tasks_failed": self.tasks_failed,
            "health_improvement": self.health_improvement,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class PhaseFailed:
    """Emitted when no task succeeded or the phase timed out."""
    session_id: str
    phase_id: str
    execution_id: str
    reason: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "phase_failed",
            "session_id": self.session_id,
            "phase_id": self.phase_id,
            "execution_id": self.execution_id,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class PhaseCancelled:
    session_id: str
    phase_id: str
    execution_id: str
    pending_tasks: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "phase_cancelled",
            "session_id": self.session_id,
            "phase_id": self.phase_id,
            "execution_id": self.execution_id,
            "pending_tasks": list(self.pending_tasks),
        }


@dataclass(frozen=True)
class TaskCompleted:
    phase_id: str
    task_id: str
    task_type: str
    health_improvement: int
    duration_ms: int
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "task_completed",
            "phase_id": self.phase_id,
            "task_id": self.task_id,
            "task_type": self.task_type,
            "health_improvement": self.health_improvement,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class TaskFailed:
    phase_id: str
    task_id: str
    task_type: str
    error: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "task_failed",
            "phase_id": self.phase_id,
            "task_id": self.task_id,
            "task_type": self.task_type,
            "error": self.error,
        }
