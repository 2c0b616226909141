"""Error taxonomy shared by every recovery bounded context.

Task-level failures are normally recorded as data on the task result.
Only prerequisite violations, timeouts and unknown identifiers reach the
caller as raised exceptions.
"""
from __future__ import annotations

from typing import List, Optional


class RecoveryError(Exception):
    """Base exception for recovery engine errors."""

    pass


class InvalidModuleError(RecoveryError):
    """Raised when a module id is outside the known module set."""

    def __init__(self, module_id: str, message: Optional[str] = None) -> None:
        self.module_id = module_id
        super().__init__(message or f"Invalid module ID: {module_id}")


class PhaseNotFoundError(RecoveryError):
    """Raised when a phase id does not exist in the session's plan."""

    def __init__(self, phase_id: str) -> None:
        self.phase_id = phase_id
        super().__init__(f"Phase not found: {phase_id}")


class PrerequisiteError(RecoveryError):
    """Raised when a phase's dependency, blocker or type gate is violated.

    Attributes:
        phase_id: The phase that could not start
        reasons: Every violated prerequisite, in check order
    """

    def __init__(self, phase_id: str, reasons: List[str]) -> None:
        self.phase_id = phase_id
        self.reasons = list(reasons)
        super().__init__(
            f"Prerequisites not met for phase {phase_id}: " + "; ".join(self.reasons)
        )


class TaskExecutionError(RecoveryError):
    """Raised by task handlers; caught and recorded per task."""

    def __init__(self, task_id: str, message: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} failed: {message}")


class PhaseTimeoutError(RecoveryError, TimeoutError):
    """Raised when a sequential phase exceeds its timeout."""

    def __init__(self, phase_id: str, elapsed_ms: float, timeout_ms: int) -> None:
        self.phase_id = phase_id
        self.elapsed_ms = elapsed_ms
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Phase {phase_id} timed out after {elapsed_ms:.0f}ms "
            f"(limit {timeout_ms}ms)"
        )


class ValidationCriterionFailure(RecoveryError):
    """A task's validation criterion did not hold after the handler ran."""

    def __init__(self, task_id: str, criterion: str, message: str) -> None:
        self.task_id = task_id
        self.criterion = criterion
        super().__init__(f"Validation criterion '{criterion}' failed for {task_id}: {message}")


class ReportTemplateNotFoundError(RecoveryError):
    """Raised when a report is requested for an unknown template id."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Report template not found: {template_id}")


class ReportWriteError(RecoveryError):
    """Raised when the reporting collaborator cannot write a report."""

    def __init__(self, report_id: str, message: str) -> None:
        self.report_id = report_id
        super().__init__(f"Could not write report {report_id}: {message}")


class SessionNotFoundError(RecoveryError):
    """Raised when no recovery session with the given id is tracked."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Recovery session not found: {session_id}")
