"""Phase Execution Domain Entities.

Entities have identity and mutable state. ``RecoveryPhase`` and
``RecoveryTask`` are owned by a ``RecoverySession`` and only mutated by
the PhaseExecutor working on that session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .value_objects import PhaseStatus, PhaseType, TaskStatus, TaskType


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class RecoveryTask:
    """Smallest unit of recovery work."""
    task_id: str
    task_name: str
    task_type: TaskType
    status: TaskStatus = TaskStatus.PENDING
    target_modules: List[str] = field(default_factory=list)
    target_configurations: List[str] = field(default_factory=list)
    validation_required: bool = False
    validation_criteria: List[str] = field(default_factory=list)
    output: str = ""
    error_output: str = ""
    artifacts: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "task_name": self.task_name,
            "task_type": self.task_type.value,
            "status": self.status.value,
            "target_modules": list(self.target_modules),
            "target_configurations": list(self.target_configurations),
            "validation_required": self.validation_required,
            "validation_criteria": list(self.validation_criteria),
            "output": self.output,
            "error_output": self.error_output,
            "artifacts": list(self.artifacts),
            "warnings": list(self.warnings),
        }


@dataclass
class TaskExecutionResult:
    """Outcome of executing one task, recorded as data rather than raised."""
    task_id: str
    success: bool
    health_improvement: int = 0
    errors_resolved: int = 0
    artifacts: List[str] = field(default_factory=list)
    output: str = ""
    error_output: str = ""
    warnings: List[str] = field(default_factory=list)
    duration_ms: int = 0

    @classmethod
    def failure(cls, task_id: str, error: str) -> TaskExecutionResult:
        return cls(task_id=task_id, success=False, error_output=error)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "task_id": self.task_id,
            "success": self.success,
            "health_improvement": self.health_improvement,
            "errors_resolved": self.errors_resolved,
            "artifacts": list(self.artifacts),
            "output": self.output,
            "duration_ms": self.duration_ms,
        }
        if self.error_output:
            d["error_output"] = self.error_output
        if self.warnings:
            d["warnings"] = list(self.warnings)
        return d


@dataclass
class RecoveryPhase:
    """A dependency-gated stage of a recovery plan.

    Invariants:
        - may enter ``executing`` only if every ``depends_on`` phase is
          completed and no ``blocked_by`` phase is pending/ready/executing
    """
    phase_id: str
    phase_name: str
    phase_type: PhaseType
    order: int = 0
    status: PhaseStatus = PhaseStatus.PENDING
    depends_on: List[str] = field(default_factory=list)
    blocked_by: List[str] = field(default_factory=list)
    tasks: List[RecoveryTask] = field(default_factory=list)
    completed_tasks: int = 0
    health_improvement: int = 0
    estimated_duration_ms: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None

    @property
    def total_tasks(self) -> int:
        return len(self.tasks)

    def start(self, now: datetime) -> None:
        self.status = PhaseStatus.EXECUTING
        self.start_time = now
        self.end_time = None
        self.duration_ms = None

    def finish(self, status: PhaseStatus, now: datetime) -> None:
        self.status = status
        self.end_time = now
        if self.start_time is not None:
            self.duration_ms = int((now - self.start_time).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "phase_name": self.phase_name,
            "phase_type": self.phase_type.value,
            "order": self.order,
            "status": self.status.value,
            "depends_on": list(self.depends_on),
            "blocked_by": list(self.blocked_by),
            "tasks": [t.to_dict() for t in self.tasks],
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "health_improvement": self.health_improvement,
            "estimated_duration_ms": self.estimated_duration_ms,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_ms": self.duration_ms,
        }


@dataclass
class PhaseExecutionResult:
    """Outcome of one ``execute_phase`` call."""
    execution_id: str
    phase_id: str
    status: PhaseStatus
    tasks_executed: int = 0
    tasks_succeeded: int = 0
    tasks_failed: int = 0
    health_improvement: int = 0
    errors_resolved: int = 0
    batches: List[List[str]] = field(default_factory=list)
    task_results: List[TaskExecutionResult] = field(default_factory=list)
    artifacts: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: int = 0

    def record(self, result: TaskExecutionResult) -> None:
        self.task_results.append(result)
        self.tasks_executed += 1
        if result.success:
            self.tasks_succeeded += 1
            self.health_improvement += result.health_improvement
            self.errors_resolved += result.errors_resolved
            self.artifacts.extend(result.artifacts)
        else:
            self.tasks_failed += 1
        self.warnings.extend(result.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "phase_id": self.phase_id,
            "status": self.status.value,
            "tasks_executed": self.tasks_executed,
            "tasks_succeeded": self.tasks_succeeded,
            "tasks_failed": self.tasks_failed,
            "health_improvement": self.health_improvement,
            "errors_resolved": self.errors_resolved,
            "batches": [list(b) for b in self.batches],
            "task_results": [r.to_dict() for r in self.task_results],
            "artifacts": list(self.artifacts),
            "warnings": list(self.warnings),
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_ms": self.duration_ms,
        }


@dataclass
class ActiveExecution:
    """Bookkeeping for a phase execution in flight."""
    execution_id: str
    phase_id: str
    started_at: datetime
    status: PhaseStatus = PhaseStatus.EXECUTING
    cancel_requested: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "phase_id": self.phase_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "cancel_requested": self.cancel_requested,
        }


@dataclass(frozen=True)
class CancellationResult:
    cancelled: bool
    cleanup_performed: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "cancelled": self.cancelled,
            "cleanup_performed": self.cleanup_performed,
        }
        if self.reason:
            d["reason"] = self.reason
        return d
