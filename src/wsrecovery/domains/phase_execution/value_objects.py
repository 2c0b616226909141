"""Phase Execution Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
All value objects use frozen dataclasses with __post_init__ validation.
"""
from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, Optional, Tuple

from wsrecovery.domains.shared.kernel import RecoveryStrategy


class SessionStatus(str, enum.Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PhaseStatus(str, enum.Enum):
    """Lifecycle of a recovery phase.

    ``pending -> ready -> executing -> {completed | failed | cancelled}``

    A phase is ready once its dependencies are completed and no blocker is
    active; phase-type gates are only checked when it is executed. Failed
    and cancelled phases may be executed again, completed ones may not.
    """
    PENDING = "pending"
    READY = "ready"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active phases block the phases that list them in ``blocked_by``."""
        return self in _ACTIVE_PHASE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in (PhaseStatus.COMPLETED, PhaseStatus.FAILED, PhaseStatus.CANCELLED)

    @property
    def is_runnable(self) -> bool:
        return self in _RUNNABLE_PHASE_STATUSES


_ACTIVE_PHASE_STATUSES: FrozenSet[PhaseStatus] = frozenset({
    PhaseStatus.EXECUTING,
    PhaseStatus.PENDING,
    PhaseStatus.READY,
})

_RUNNABLE_PHASE_STATUSES: FrozenSet[PhaseStatus] = frozenset({
    PhaseStatus.PENDING,
    PhaseStatus.READY,
    PhaseStatus.FAILED,
    PhaseStatus.CANCELLED,
})


class PhaseType(str, enum.Enum):
    STABILIZATION = "stabilization"
    ANALYSIS = "analysis"
    IMPLEMENTATION = "implementation"
    VALIDATION = "validation"
    MONITORING = "monitoring"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(str, enum.Enum):
    ANALYSIS = "analysis"
    REPAIR = "repair"
    BUILD = "build"
    TEST = "test"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"


# Health improvement credited to a successful task of each type.
NOMINAL_TASK_IMPROVEMENT: Dict[TaskType, int] = {
    TaskType.ANALYSIS: 5,
    TaskType.REPAIR: 15,
    TaskType.BUILD: 10,
    TaskType.TEST: 8,
    TaskType.VALIDATION: 3,
    TaskType.CONFIGURATION: 12,
}

# A phase with at least one successful task is completed even if other
# tasks failed. Set to False to require every executed task to succeed.
PARTIAL_SUCCESS_COMPLETES_PHASE = True

DEFAULT_MAX_CONCURRENCY = 4

# Stabilization may not start while the workspace configuration is
# invalid with more errors than this.
STABILIZATION_MAX_CONFIG_ERRORS = 5

# Cumulative improvement earlier phases must have produced before an
# implementation phase may start.
IMPLEMENTATION_MIN_PRIOR_IMPROVEMENT = 20


@dataclass(frozen=True)
class ExecutionId:
    """Unique identifier for one execution of a phase.

    Format: ``exec-<phase_id>-<8 hex chars>``.

    Examples:
        >>> eid = ExecutionId.generate("phase-2")
    """
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("ExecutionId cannot be empty")

    @classmethod
    def generate(cls, phase_id: str) -> ExecutionId:
        return cls(value=f"exec-{phase_id}-{uuid.uuid4().hex[:8]}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExecutionOptions:
    """Options for one ``execute_phase`` call.

    Attributes:
        parallel: Run tasks in bounded-concurrency batches
        max_concurrency: Batch size for parallel mode
        force_execution: Keep going after task failures and accept failed
            validation criteria as warnings
        skip_validation: Skip prerequisite and type-gate checks
        dry_run: Handlers return nominal results without side effects
        timeout_ms: Sequential-mode budget measured from phase start
    """
    parallel: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    force_execution: bool = False
    skip_validation: bool = False
    dry_run: bool = False
    timeout_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")


@dataclass(frozen=True)
class PrerequisiteCheck:
    """Result of checking whether a phase may start."""
    satisfied: bool
    reasons: Tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> PrerequisiteCheck:
        return cls(satisfied=True)

    @classmethod
    def failed(cls, *reasons: str) -> PrerequisiteCheck:
        return cls(satisfied=False, reasons=tuple(reasons))


@dataclass(frozen=True)
class ValidationCriterion:
    """A check run after a task handler when validation is required.

    Supported forms:
        ``no_critical_errors``, ``dependencies_resolved``, ``module_valid``,
        ``artifacts_present``, ``health_improved``, ``health_score>=N``
    """
    name: str
    threshold: Optional[int] = None

    KNOWN: ClassVar[FrozenSet[str]] = frozenset({
        "no_critical_errors",
        "dependencies_resolved",
        "module_valid",
        "artifacts_present",
        "health_improved",
        "health_score",
    })
    MODULE_CRITERIA: ClassVar[FrozenSet[str]] = frozenset({
        "no_critical_errors",
        "dependencies_resolved",
        "module_valid",
        "health_score",
    })
    _SCORE_PATTERN: ClassVar[re.Pattern] = re.compile(r"^health_score\s*>=\s*(\d{1,3})$")

    @classmethod
    def parse(cls, raw: str) -> ValidationCriterion:
        text = raw.strip().lower()
        match = cls._SCORE_PATTERN.match(text)
        if match:
            return cls(name="health_score", threshold=int(match.group(1)))
        return cls(name=text)

    @property
    def is_known(self) -> bool:
        return self.name in self.KNOWN

    @property
    def needs_module_state(self) -> bool:
        return self.name in self.MODULE_CRITERIA

    def __str__(self) -> str:
        if self.threshold is not None:
            return f"{self.name}>={self.threshold}"
        return self.name


@dataclass(frozen=True)
class PhaseTemplate:
    """Shape of one phase in a strategy's recovery plan."""
    name: str
    phase_type: PhaseType
    task_types: Tuple[TaskType, ...]
    estimated_duration_ms: int


PLAN_TEMPLATES: Dict[RecoveryStrategy, Tuple[PhaseTemplate, ...]] = {
    RecoveryStrategy.REPAIR: (
        PhaseTemplate("Analysis", PhaseType.ANALYSIS, (TaskType.ANALYSIS,), 30000),
        PhaseTemplate("Stabilization", PhaseType.STABILIZATION, (TaskType.REPAIR,), 90000),
    ),
    RecoveryStrategy.REBUILD: (
        PhaseTemplate("Analysis", PhaseType.ANALYSIS, (TaskType.ANALYSIS,), 30000),
        PhaseTemplate(
            "Stabilization", PhaseType.STABILIZATION,
            (TaskType.REPAIR, TaskType.CONFIGURATION), 120000,
        ),
        PhaseTemplate(
            "Implementation", PhaseType.IMPLEMENTATION,
            (TaskType.BUILD, TaskType.TEST), 300000,
        ),
        PhaseTemplate("Validation", PhaseType.VALIDATION, (TaskType.VALIDATION,), 60000),
    ),
    RecoveryStrategy.RESET: (
        PhaseTemplate("Analysis", PhaseType.ANALYSIS, (TaskType.ANALYSIS,), 30000),
        PhaseTemplate(
            "Stabilization", PhaseType.STABILIZATION,
            (TaskType.CONFIGURATION, TaskType.REPAIR), 120000,
        ),
        PhaseTemplate("Implementation", PhaseType.IMPLEMENTATION, (TaskType.BUILD,), 180000),
        PhaseTemplate("Validation", PhaseType.VALIDATION, (TaskType.VALIDATION,), 60000),
    ),
}
