"""Phase Execution Domain Services.

Contains the TaskDispatcher (per-task-type handlers), the PhaseExecutor
(prerequisite gating, sequential and batched-parallel execution,
cancellation, progress projections) and Protocol definitions for the
collaborators they consume.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Sequence,
    runtime_checkable,
)

from wsrecovery.domains.health.aggregates import WorkspaceHealth
from wsrecovery.domains.health.entities import (
    ConfigurationReport,
    ModuleState,
    ModuleValidationResult,
)
from wsrecovery.domains.health.value_objects import DependencyHealth
from wsrecovery.domains.module_recovery.services import (
    CommandResult,
    CommandRunner,
    ModuleRecoveryProtocol,
)
from wsrecovery.domains.module_recovery.value_objects import RecoveryContext
from wsrecovery.domains.shared.errors import (
    PhaseTimeoutError,
    PrerequisiteError,
    TaskExecutionError,
    ValidationCriterionFailure,
)
from wsrecovery.domains.shared.kernel import PACKAGES_DIR, RecoveryStrategy, utc_now

from .aggregates import RecoverySession
from .entities import (
    ActiveExecution,
    CancellationResult,
    PhaseExecutionResult,
    RecoveryPhase,
    RecoveryTask,
    TaskExecutionResult,
)
from .events import (
    PhaseCancelled,
    PhaseCompleted,
    PhaseFailed,
    PhaseStarted,
    TaskCompleted,
    TaskFailed,
)
from .value_objects import (
    IMPLEMENTATION_MIN_PRIOR_IMPROVEMENT,
    NOMINAL_TASK_IMPROVEMENT,
    PARTIAL_SUCCESS_COMPLETES_PHASE,
    STABILIZATION_MAX_CONFIG_ERRORS,
    ExecutionId,
    ExecutionOptions,
    PhaseStatus,
    PhaseType,
    PrerequisiteCheck,
    TaskStatus,
    TaskType,
    ValidationCriterion,
)

logger = logging.getLogger(__name__)


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class WorkspaceAnalyzerProtocol(Protocol):
    """Protocol for workspace analysis (anti-corruption layer to health)."""
    async def analyze_module(self, module_id: str) -> ModuleState: ...

    async def analyze_workspace(
        self,
        modules: Optional[Iterable[str]] = None,
        include_recommendations: bool = True,
    ) -> WorkspaceHealth: ...

    def validate_configuration(self) -> ConfigurationReport: ...


@runtime_checkable
class ModuleValidatorProtocol(Protocol):
    """Protocol for the validation collaborator."""
    async def validate_single_module(self, module_id: str) -> ModuleValidationResult: ...


@runtime_checkable
class CommandRunnerProtocol(Protocol):
    async def run(
        self, args: Sequence[str], cwd: Path, timeout_s: Optional[float] = None,
    ) -> CommandResult: ...


EventPublisher = Optional[Callable[..., None]]

TaskHandler = Callable[[RecoveryTask, ExecutionOptions], Awaitable[TaskExecutionResult]]


# ── TaskDispatcher ────────────────────────────────────────────────────

@dataclass
class TaskDispatcher:
    """Dispatches a task to the handler for its type.

    In dry-run mode every handler returns a synthetic success carrying
    the nominal improvement for its task type. In real mode handlers act
    on the target modules and raise TaskExecutionError on failure.
    """
    analyzer: WorkspaceAnalyzerProtocol
    workspace_path: Path
    module_recovery: Optional[ModuleRecoveryProtocol] = None
    validator: Optional[ModuleValidatorProtocol] = None
    command_runner: CommandRunnerProtocol = field(default_factory=CommandRunner)
    strategy: RecoveryStrategy = RecoveryStrategy.REPAIR
    recovery_context: RecoveryContext = field(default_factory=RecoveryContext)

    def __post_init__(self) -> None:
        self.workspace_path = Path(self.workspace_path)
        self._handlers: Dict[TaskType, TaskHandler] = {
            TaskType.ANALYSIS: self._analysis,
            TaskType.REPAIR: self._repair,
            TaskType.BUILD: self._build,
            TaskType.TEST: self._test,
            TaskType.VALIDATION: self._validation,
            TaskType.CONFIGURATION: self._configuration,
        }

    async def dispatch(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        if options.dry_run:
            return self._nominal(task)
        return await self._handlers[task.task_type](task, options)

    def _nominal(self, task: RecoveryTask) -> TaskExecutionResult:
        return TaskExecutionResult(
            task_id=task.task_id,
            success=True,
            health_improvement=NOMINAL_TASK_IMPROVEMENT[task.task_type],
            output=f"[dry-run] Would execute {task.task_type.value} task: {task.task_name}",
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _analysis(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        health = await self.analyzer.analyze_workspace(task.target_modules or None)
        return TaskExecutionResult(
            task_id=task.task_id,
            success=True,
            health_improvement=NOMINAL_TASK_IMPROVEMENT[TaskType.ANALYSIS],
            output=f"Analysis completed: {health.overall_health_score}/100 health score",
            artifacts=["analysis-report.json"],
        )

    async def _repair(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        if self.module_recovery is None:
            raise TaskExecutionError(task.task_id, "no module-recovery collaborator configured")
        if not task.target_modules:
            raise TaskExecutionError(task.task_id, "repair task has no target modules")

        context = self.recovery_context.model_copy(update={"dry_run": False})
        result = TaskExecutionResult(task_id=task.task_id, success=True)
        failed: List[str] = []
        for module_id in task.target_modules:
            recovery = await self.module_recovery.execute_recovery(
                module_id, self.strategy, context,
            )
            result.health_improvement += recovery.health_improvement
            result.errors_resolved += recovery.errors_resolved
            result.artifacts.extend(recovery.artifacts)
            if not recovery.success and recovery.health_improvement <= 0:
                failed.append(module_id)
        result.output = f"Repair completed for {len(task.target_modules)} modules"
        if failed:
            result.success = False
            result.error_output = "Recovery made no progress for: " + ", ".join(failed)
        return result

    async def _build(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        return await self._run_command_task(
            task, ("npm", "run", "build"), "build-output.log", errors_resolved=1,
        )

    async def _test(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        return await self._run_command_task(
            task, ("npm", "test"), "test-results.xml", errors_resolved=0,
        )

    async def _run_command_task(
        self,
        task: RecoveryTask,
        command: Sequence[str],
        artifact: str,
        errors_resolved: int,
    ) -> TaskExecutionResult:
        targets = [
            self.workspace_path / PACKAGES_DIR / m for m in task.target_modules
        ] or [self.workspace_path]
        timeout_s = self.recovery_context.timeout_ms / 1000
        failures: List[str] = []
        outputs: List[str] = []
        for cwd in targets:
            completed = await self.command_runner.run(command, cwd, timeout_s=timeout_s)
            outputs.append(f"{cwd.name}: exit {completed.returncode}")
            if not completed.ok:
                failures.append(f"{cwd.name}: {completed.stderr.strip() or 'command failed'}")
        if failures:
            raise TaskExecutionError(task.task_id, "; ".join(failures))
        return TaskExecutionResult(
            task_id=task.task_id,
            success=True,
            health_improvement=NOMINAL_TASK_IMPROVEMENT[task.task_type],
            errors_resolved=errors_resolved,
            artifacts=[artifact],
            output=f"{' '.join(command)}: " + ", ".join(outputs),
        )

    async def _validation(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        result = TaskExecutionResult(
            task_id=task.task_id,
            success=True,
            health_improvement=NOMINAL_TASK_IMPROVEMENT[TaskType.VALIDATION],
            output=f"Validation task executed: {task.task_name}",
        )
        if self.validator is None or not task.target_modules:
            return result
        invalid: List[str] = []
        for module_id in task.target_modules:
            validation = await self.validator.validate_single_module(module_id)
            if not validation.is_valid:
                invalid.append(f"{module_id} ({validation.health_score})")
        if invalid:
            raise TaskExecutionError(task.task_id, "modules failed validation: " + ", ".join(invalid))
        return result

    async def _configuration(self, task: RecoveryTask, options: ExecutionOptions) -> TaskExecutionResult:
        problems: List[str] = []
        for relative in task.target_configurations:
            path = self.workspace_path / relative
            if not path.is_file():
                problems.append(f"{relative} not found")
                continue
            if path.suffix == ".json":
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        json.load(f)
                except (OSError, ValueError) as e:
                    problems.append(f"{relative}: {e}")
        if problems:
            raise TaskExecutionError(task.task_id, "; ".join(problems))
        return TaskExecutionResult(
            task_id=task.task_id,
            success=True,
            health_improvement=NOMINAL_TASK_IMPROVEMENT[TaskType.CONFIGURATION],
            errors_resolved=len(task.target_configurations),
            artifacts=list(task.target_configurations),
            output=f"Configuration task executed: {task.task_name}",
        )


# ── PhaseExecutor ─────────────────────────────────────────────────────

@dataclass
class PhaseExecutor:
    """Runs the phases of one RecoverySession.

    Owns the session for its lifetime and is the only writer of phase,
    task and session state. Active executions are tracked per instance.
    """
    session: RecoverySession
    analyzer: WorkspaceAnalyzerProtocol
    dispatcher: TaskDispatcher
    event_publisher: EventPublisher = None
    partial_success_completes_phase: bool = PARTIAL_SUCCESS_COMPLETES_PHASE
    active_executions: Dict[str, ActiveExecution] = field(default_factory=dict)
    _executions: Dict[str, ActiveExecution] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.refresh_readiness()

    # ------------------------------------------------------------------
    # Prerequisites
    # ------------------------------------------------------------------

    def check_prerequisites(self, phase: RecoveryPhase) -> PrerequisiteCheck:
        """Check dependency, blocker and phase-type gates without raising."""
        reasons = self._ordering_reasons(phase)
        reasons.extend(self._check_phase_type_gate(phase).reasons)
        if reasons:
            return PrerequisiteCheck.failed(*reasons)
        return PrerequisiteCheck.ok()

    def refresh_readiness(self) -> List[str]:
        """Move pending phases whose dependencies and blockers are clear to ready.

        Ready phases that became blocked again drop back to pending.
        Returns the ids of phases that became ready.
        """
        became_ready: List[str] = []
        for phase in self.session.recovery_plan:
            if phase.status not in (PhaseStatus.PENDING, PhaseStatus.READY):
                continue
            clear = not self._ordering_reasons(phase)
            if clear and phase.status == PhaseStatus.PENDING:
                phase.status = PhaseStatus.READY
                became_ready.append(phase.phase_id)
            elif not clear:
                phase.status = PhaseStatus.PENDING
        return became_ready

    def _ordering_reasons(self, phase: RecoveryPhase) -> List[str]:
        reasons: List[str] = []
        for dep_id in phase.depends_on:
            dep = self.session.find_phase(dep_id)
            if dep is None:
                reasons.append(f"Dependency {dep_id} does not exist")
            elif dep.status != PhaseStatus.COMPLETED:
                reasons.append(f"Dependency {dep_id} is {dep.status.value}, not completed")
        for blocker_id in phase.blocked_by:
            blocker = self.session.find_phase(blocker_id)
            if blocker is not None and blocker.status.is_active:
                reasons.append(f"Blocked by {blocker_id} ({blocker.status.value})")
        return reasons

    def _check_phase_type_gate(self, phase: RecoveryPhase) -> PrerequisiteCheck:
        if phase.phase_type == PhaseType.STABILIZATION:
            report = self.analyzer.validate_configuration()
            if not report.valid and len(report.errors) > STABILIZATION_MAX_CONFIG_ERRORS:
                return PrerequisiteCheck.failed(
                    f"Workspace has {len(report.errors)} configuration errors "
                    f"(max {STABILIZATION_MAX_CONFIG_ERRORS})"
                )
        elif phase.phase_type == PhaseType.IMPLEMENTATION:
            prior = sum(p.health_improvement for p in self.session.phases_before(phase))
            if prior < IMPLEMENTATION_MIN_PRIOR_IMPROVEMENT:
                return PrerequisiteCheck.failed(
                    f"Prior phases improved health by {prior} "
                    f"(requires {IMPLEMENTATION_MIN_PRIOR_IMPROVEMENT})"
                )
        elif phase.phase_type == PhaseType.VALIDATION:
            unfinished = [
                p.phase_id for p in self.session.phases_before(phase)
                if p.phase_type == PhaseType.IMPLEMENTATION
                and p.status != PhaseStatus.COMPLETED
            ]
            if unfinished:
                return PrerequisiteCheck.failed(
                    "Implementation phases not completed: " + ", ".join(unfinished)
                )
        return PrerequisiteCheck.ok()

    # ------------------------------------------------------------------
    # Phase execution
    # ------------------------------------------------------------------

    async def execute_phase(
        self, phase_id: str, options: Optional[ExecutionOptions] = None,
    ) -> PhaseExecutionResult:
        """Execute one phase of the session's plan.

        Args:
            phase_id: Phase to run
            options: Execution options; defaults to sequential, no force

        Returns:
            The execution result; task failures are recorded, not raised

        Raises:
            PhaseNotFoundError: If the phase is not in the plan
            PrerequisiteError: If the phase is completed or executing, or a
                prerequisite fails; phase state is unchanged
            PhaseTimeoutError: If a sequential run exceeds ``timeout_ms``;
                the phase and session are marked failed first
        """
        options = options or ExecutionOptions()
        phase = self.session.get_phase(phase_id)

        if not phase.status.is_runnable:
            raise PrerequisiteError(phase_id, [f"Phase is already {phase.status.value}"])
        if not options.skip_validation:
            check = self.check_prerequisites(phase)
            if not check.satisfied:
                logger.info("Phase %s prerequisites not met: %s", phase_id, "; ".join(check.reasons))
                raise PrerequisiteError(phase_id, list(check.reasons))

        now = utc_now()
        execution = ActiveExecution(
            execution_id=ExecutionId.generate(phase_id).value,
            phase_id=phase_id,
            started_at=now,
        )
        self.active_executions[execution.execution_id] = execution
        self._executions[execution.execution_id] = execution

        for task in phase.tasks:
            task.status = TaskStatus.PENDING
        phase.completed_tasks = 0
        phase.health_improvement = 0
        phase.start(now)
        self.session.start(now)
        self.session.current_phase = phase_id
        self.refresh_readiness()

        result = PhaseExecutionResult(
            execution_id=execution.execution_id,
            phase_id=phase_id,
            status=PhaseStatus.EXECUTING,
            start_time=now,
        )
        self._publish(PhaseStarted(
            session_id=self.session.session_id,
            phase_id=phase_id,
            execution_id=execution.execution_id,
            task_count=phase.total_tasks,
            parallel=options.parallel,
        ))
        logger.info(
            "Executing phase %s (%s, %d tasks, %s)",
            phase_id, phase.phase_type.value, phase.total_tasks,
            "parallel" if options.parallel else "sequential",
        )

        start = time.monotonic()
        try:
            if options.parallel:
                await self._execute_parallel(phase, options, execution, result)
            else:
                await self._execute_sequential(phase, options, execution, result, start)
        except PhaseTimeoutError as e:
            self._finish(phase, execution, result, PhaseStatus.FAILED)
            self.session.update_progress()
            self.session.fail()
            self._publish(PhaseFailed(
                session_id=self.session.session_id,
                phase_id=phase_id,
                execution_id=execution.execution_id,
                reason=str(e),
            ))
            logger.warning("%s", e)
            raise
        finally:
            self.active_executions.pop(execution.execution_id, None)

        if execution.cancel_requested:
            status = PhaseStatus.CANCELLED
        else:
            status = self._final_status(phase, result)
        self._finish(phase, execution, result, status)
        self.session.update_progress()
        if status == PhaseStatus.CANCELLED:
            self.session.cancel()

        if status == PhaseStatus.COMPLETED:
            self._publish(PhaseCompleted(
                session_id=self.session.session_id,
                phase_id=phase_id,
                execution_id=execution.execution_id,
                tasks_succeeded=result.tasks_succeeded,
                tasks_failed=result.tasks_failed,
                health_improvement=result.health_improvement,
                duration_ms=result.duration_ms,
            ))
        elif status == PhaseStatus.FAILED:
            self.session.fail()
            self._publish(PhaseFailed(
                session_id=self.session.session_id,
                phase_id=phase_id,
                execution_id=execution.execution_id,
                reason=f"{result.tasks_failed} of {result.tasks_executed} tasks failed",
            ))
        logger.info(
            "Phase %s %s: %d/%d tasks succeeded, +%d health",
            phase_id, status.value, result.tasks_succeeded, result.tasks_executed,
            result.health_improvement,
        )
        return result

    async def _execute_sequential(
        self,
        phase: RecoveryPhase,
        options: ExecutionOptions,
        execution: ActiveExecution,
        result: PhaseExecutionResult,
        start: float,
    ) -> None:
        for task in phase.tasks:
            if execution.cancel_requested:
                break
            task_result = await self.execute_task(task, options, phase)
            self._apply(phase, result, task_result)
            if not task_result.success and not options.force_execution:
                break
            if options.timeout_ms is not None:
                elapsed_ms = (time.monotonic() - start) * 1000
                if elapsed_ms > options.timeout_ms:
                    raise PhaseTimeoutError(phase.phase_id, elapsed_ms, options.timeout_ms)

    async def _execute_parallel(
        self,
        phase: RecoveryPhase,
        options: ExecutionOptions,
        execution: ActiveExecution,
        result: PhaseExecutionResult,
    ) -> None:
        for batch in self.create_batches(phase.tasks, options.max_concurrency):
            if execution.cancel_requested:
                break
            result.batches.append([t.task_id for t in batch])
            outcomes = await asyncio.gather(
                *(self.execute_task(t, options, phase) for t in batch),
                return_exceptions=True,
            )
            batch_failures = 0
            for task, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    task.status = TaskStatus.FAILED
                    task.error_output = str(outcome)
                    outcome = TaskExecutionResult.failure(task.task_id, str(outcome))
                self._apply(phase, result, outcome)
                if not outcome.success:
                    batch_failures += 1
            if batch_failures and not options.force_execution:
                break

    @staticmethod
    def create_batches(tasks: Sequence[RecoveryTask], max_concurrency: int) -> List[List[RecoveryTask]]:
        """Split tasks into consecutive batches of ``max_concurrency``."""
        size = max(1, max_concurrency)
        return [list(tasks[i:i + size]) for i in range(0, len(tasks), size)]

    def _apply(
        self, phase: RecoveryPhase, result: PhaseExecutionResult, task_result: TaskExecutionResult,
    ) -> None:
        result.record(task_result)
        if task_result.success:
            phase.completed_tasks += 1
            phase.health_improvement += task_result.health_improvement

    def _final_status(self, phase: RecoveryPhase, result: PhaseExecutionResult) -> PhaseStatus:
        if phase.total_tasks == 0:
            return PhaseStatus.COMPLETED
        if result.tasks_succeeded == 0:
            return PhaseStatus.FAILED
        if result.tasks_failed and not self.partial_success_completes_phase:
            return PhaseStatus.FAILED
        return PhaseStatus.COMPLETED

    def _finish(
        self,
        phase: RecoveryPhase,
        execution: ActiveExecution,
        result: PhaseExecutionResult,
        status: PhaseStatus,
    ) -> None:
        now = utc_now()
        if phase.status != PhaseStatus.CANCELLED:
            phase.finish(status, now)
        self.refresh_readiness()
        execution.status = status
        result.status = status
        result.end_time = now
        if result.start_time is not None:
            result.duration_ms = int((now - result.start_time).total_seconds() * 1000)

    # ------------------------------------------------------------------
    # Task execution
    # ------------------------------------------------------------------

    async def execute_task(
        self,
        task: RecoveryTask,
        options: ExecutionOptions,
        phase: Optional[RecoveryPhase] = None,
    ) -> TaskExecutionResult:
        """Run one task and record its outcome on the task.

        Handler errors become a failed result; they never propagate.
        """
        task.status = TaskStatus.EXECUTING
        start = time.monotonic()
        try:
            result = await self.dispatcher.dispatch(task, options)
        except Exception as e:
            logger.debug("Task %s failed: %s", task.task_id, e)
            result = TaskExecutionResult.failure(task.task_id, str(e))

        if result.success and task.validation_required:
            await self._apply_validation(task, result, options)

        result.duration_ms = int((time.monotonic() - start) * 1000)
        task.status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
        task.output = result.output
        task.error_output = result.error_output
        task.artifacts = list(result.artifacts)
        task.warnings = list(result.warnings)

        phase_id = phase.phase_id if phase else ""
        if result.success:
            self._publish(TaskCompleted(
                phase_id=phase_id,
                task_id=task.task_id,
                task_type=task.task_type.value,
                health_improvement=result.health_improvement,
                duration_ms=result.duration_ms,
            ))
        else:
            self._publish(TaskFailed(
                phase_id=phase_id,
                task_id=task.task_id,
                task_type=task.task_type.value,
                error=result.error_output,
            ))
        return result

    async def _apply_validation(
        self, task: RecoveryTask, result: TaskExecutionResult, options: ExecutionOptions,
    ) -> None:
        failures = await self._evaluate_criteria(task, result, options)
        if not failures:
            return
        if options.force_execution:
            for failure in failures:
                logger.warning("Accepting failed validation under force: %s", failure)
                result.warnings.append(str(failure))
            return
        result.success = False
        result.error_output = "; ".join(str(f) for f in failures)

    async def _evaluate_criteria(
        self, task: RecoveryTask, result: TaskExecutionResult, options: ExecutionOptions,
    ) -> List[ValidationCriterionFailure]:
        failures: List[ValidationCriterionFailure] = []
        for raw in task.validation_criteria:
            criterion = ValidationCriterion.parse(raw)
            if not criterion.is_known:
                failures.append(ValidationCriterionFailure(task.task_id, raw, "unknown criterion"))
            elif criterion.name == "artifacts_present":
                if not result.artifacts:
                    failures.append(ValidationCriterionFailure(
                        task.task_id, raw, "task produced no artifacts",
                    ))
            elif criterion.name == "health_improved":
                if result.health_improvement <= 0:
                    failures.append(ValidationCriterionFailure(
                        task.task_id, raw, "task did not improve health",
                    ))
            elif criterion.needs_module_state and not options.dry_run:
                for module_id in task.target_modules:
                    message = await self._check_module_criterion(criterion, module_id)
                    if message:
                        failures.append(ValidationCriterionFailure(task.task_id, raw, message))
        return failures

    async def _check_module_criterion(
        self, criterion: ValidationCriterion, module_id: str,
    ) -> Optional[str]:
        if criterion.name == "module_valid":
            if self.dispatcher.validator is None:
                return "no validation collaborator configured"
            validation = await self.dispatcher.validator.validate_single_module(module_id)
            return None if validation.is_valid else f"{module_id} is not valid"

        state = await self.analyzer.analyze_module(module_id)
        if criterion.name == "no_critical_errors" and state.critical_errors:
            return f"{module_id} has {len(state.critical_errors)} critical errors"
        if criterion.name == "dependencies_resolved" and state.dependency_health != DependencyHealth.RESOLVED:
            return f"{module_id} dependencies are {state.dependency_health.value}"
        if criterion.name == "health_score" and state.health_score < (criterion.threshold or 0):
            return f"{module_id} health score {state.health_score} < {criterion.threshold}"
        return None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_phase(self, execution_id: str) -> CancellationResult:
        """Request cooperative cancellation of an executing phase.

        Never raises; unknown or finished executions yield
        ``cancelled=False`` with a reason. Already dispatched tasks run to
        completion; no further task or batch starts.
        """
        execution = self._executions.get(execution_id)
        if execution is None:
            return CancellationResult(cancelled=False, reason=f"Execution not found: {execution_id}")
        if execution.status != PhaseStatus.EXECUTING:
            return CancellationResult(
                cancelled=False,
                reason=f"Execution is {execution.status.value}, not executing",
            )
        execution.cancel_requested = True
        execution.status = PhaseStatus.CANCELLED
        cleanup = self._cleanup_cancelled(execution)
        logger.info("Cancelled execution %s of phase %s", execution_id, execution.phase_id)
        return CancellationResult(cancelled=True, cleanup_performed=cleanup)

    def owns_execution(self, execution_id: str) -> bool:
        """Whether ``execution_id`` was started by this executor, running or not."""
        return execution_id in self._executions

    def _cleanup_cancelled(self, execution: ActiveExecution) -> bool:
        phase = self.session.find_phase(execution.phase_id)
        if phase is None:
            return False
        phase.finish(PhaseStatus.CANCELLED, utc_now())
        self.refresh_readiness()
        pending = [t.task_id for t in phase.tasks if t.status == TaskStatus.PENDING]
        self._publish(PhaseCancelled(
            session_id=self.session.session_id,
            phase_id=phase.phase_id,
            execution_id=execution.execution_id,
            pending_tasks=pending,
        ))
        return True

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    def get_phases(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.session.recovery_plan]

    def monitor_progress(self) -> Dict[str, Any]:
        session = self.session
        return {
            "session_id": session.session_id,
            "status": session.status.value,
            "current_phase": session.current_phase,
            "overall_progress": session.overall_progress,
            "completed_phases": session.completed_phases,
            "total_phases": session.total_phases,
            "completed_tasks": session.completed_tasks,
            "total_tasks": session.total_tasks,
            "health_improvement": session.health_improvement,
            "current_health_score": session.current_health_score,
            "estimated_remaining_ms": session.estimated_remaining_ms(),
            "estimated_completion": session.estimated_completion().isoformat(),
            "active_executions": [e.to_dict() for e in self.active_executions.values()],
        }

    def _publish(self, event: Any) -> None:
        if self.event_publisher is not None:
            self.event_publisher(event)
