"""Phase Execution Bounded Context.

Dependency-gated execution of recovery plans: phases of typed tasks run
sequentially or in bounded-concurrency batches, with progress tracking
and cooperative cancellation.
"""
from .value_objects import (
    DEFAULT_MAX_CONCURRENCY,
    NOMINAL_TASK_IMPROVEMENT,
    PARTIAL_SUCCESS_COMPLETES_PHASE,
    PLAN_TEMPLATES,
    ExecutionId,
    ExecutionOptions,
    PhaseStatus,
    PhaseTemplate,
    PhaseType,
    PrerequisiteCheck,
    SessionStatus,
    TaskStatus,
    TaskType,
    ValidationCriterion,
)
from .entities import (
    ActiveExecution,
    CancellationResult,
    PhaseExecutionResult,
    RecoveryPhase,
    RecoveryTask,
    TaskExecutionResult,
)
from .aggregates import RecoverySession
from .events import (
    PhaseCancelled,
    PhaseCompleted,
    PhaseFailed,
    PhaseStarted,
    TaskCompleted,
    TaskFailed,
)
from .services import (
    CommandRunnerProtocol,
    ModuleValidatorProtocol,
    PhaseExecutor,
    TaskDispatcher,
    WorkspaceAnalyzerProtocol,
)

__all__ = [
    # Value objects
    "DEFAULT_MAX_CONCURRENCY",
    "NOMINAL_TASK_IMPROVEMENT",
    "PARTIAL_SUCCESS_COMPLETES_PHASE",
    "PLAN_TEMPLATES",
    "ExecutionId",
    "ExecutionOptions",
    "PhaseStatus",
    "PhaseTemplate",
    "PhaseType",
    "PrerequisiteCheck",
    "SessionStatus",
    "TaskStatus",
    "TaskType",
    "ValidationCriterion",
    # Entities
    "ActiveExecution",
    "CancellationResult",
    "PhaseExecutionResult",
    "RecoveryPhase",
    "RecoveryTask",
    "TaskExecutionResult",
    # Aggregates
    "RecoverySession",
    # Events
    "PhaseCancelled",
    "PhaseCompleted",
    "PhaseFailed",
    "PhaseStarted",
    "TaskCompleted",
    "TaskFailed",
    # Services
    "CommandRunnerProtocol",
    "ModuleValidatorProtocol",
    "PhaseExecutor",
    "TaskDispatcher",
    "WorkspaceAnalyzerProtocol",
]
