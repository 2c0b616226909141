"""Tests for phase_execution services."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from wsrecovery.domains.health import ConfigurationReport, ModuleValidationResult
from wsrecovery.domains.module_recovery import (
    CommandResult,
    RecoveryContext,
    RecoveryResult,
    RecoveryStepResult,
)
from wsrecovery.domains.phase_execution import (
    ExecutionOptions,
    PhaseCancelled,
    PhaseCompleted,
    PhaseExecutor,
    PhaseFailed,
    PhaseStarted,
    PhaseStatus,
    PhaseType,
    RecoveryPhase,
    RecoverySession,
    RecoveryTask,
    SessionStatus,
    TaskCompleted,
    TaskDispatcher,
    TaskExecutionResult,
    TaskFailed,
    TaskStatus,
    TaskType,
)
from wsrecovery.domains.shared import (
    PhaseNotFoundError,
    PhaseTimeoutError,
    PrerequisiteError,
    RecoveryStrategy,
    TaskExecutionError,
)


# ── Helpers ──────────────────────────────────────────────────────────


def _task(task_id, task_type=TaskType.ANALYSIS, **kwargs):
    return RecoveryTask(task_id=task_id, task_name=task_id, task_type=task_type, **kwargs)


def _phase(phase_id="p1", tasks=None, order=1, phase_type=PhaseType.ANALYSIS, **kwargs):
    return RecoveryPhase(
        phase_id=phase_id,
        phase_name=phase_id,
        phase_type=phase_type,
        order=order,
        tasks=tasks if tasks is not None else [_task(f"{phase_id}-t1")],
        **kwargs,
    )


def _scripted_dispatcher(failing=(), improvement=5, delay=0.0):
    async def dispatch(task, options):
        if delay:
            await asyncio.sleep(delay)
        if task.task_id in failing:
            raise TaskExecutionError(task.task_id, "boom")
        return TaskExecutionResult(
            task_id=task.task_id, success=True, health_improvement=improvement,
        )

    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(side_effect=dispatch)
    dispatcher.validator = None
    return dispatcher


def _make_executor(phases, stub_analyzer, dispatcher=None, events=None, **kwargs):
    session = RecoverySession.create(phases, initial_health_score=30, module_id="auth")
    return PhaseExecutor(
        session=session,
        analyzer=stub_analyzer,
        dispatcher=dispatcher or _scripted_dispatcher(),
        event_publisher=events.append if events is not None else None,
        **kwargs,
    )


# ── Prerequisites ────────────────────────────────────────────────────


class TestPrerequisites:
    @pytest.mark.asyncio
    async def test_unfinished_dependency_raises_and_leaves_status(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)

        with pytest.raises(PrerequisiteError) as exc_info:
            await executor.execute_phase("p2")

        assert p2.status == PhaseStatus.PENDING
        assert "p1" in exc_info.value.reasons[0]
        assert executor.session.status == SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_completed_dependency_allows_start(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)

        await executor.execute_phase("p1")
        result = await executor.execute_phase("p2")

        assert result.status == PhaseStatus.COMPLETED

    def test_missing_dependency_reported(self, stub_analyzer):
        p1 = _phase("p1", depends_on=["ghost"])
        check = _make_executor([p1], stub_analyzer).check_prerequisites(p1)
        assert not check.satisfied
        assert check.reasons == ("Dependency ghost does not exist",)

    def test_active_blocker_reported(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, blocked_by=["p1"])
        check = _make_executor([p1, p2], stub_analyzer).check_prerequisites(p2)
        assert not check.satisfied
        assert "Blocked by p1" in check.reasons[0]

    def test_finished_blocker_does_not_block(self, stub_analyzer):
        p1 = _phase("p1", status=PhaseStatus.FAILED)
        p2 = _phase("p2", order=2, blocked_by=["p1"])
        assert _make_executor([p1, p2], stub_analyzer).check_prerequisites(p2).satisfied

    def test_stabilization_gate_on_config_errors(self, stub_analyzer):
        report = ConfigurationReport()
        for i in range(6):
            report.add_error(f"error {i}")
        stub_analyzer.validate_configuration.return_value = report
        phase = _phase("p1", phase_type=PhaseType.STABILIZATION)
        check = _make_executor([phase], stub_analyzer).check_prerequisites(phase)
        assert not check.satisfied

    def test_stabilization_gate_tolerates_few_errors(self, stub_analyzer):
        report = ConfigurationReport()
        for i in range(5):
            report.add_error(f"error {i}")
        stub_analyzer.validate_configuration.return_value = report
        phase = _phase("p1", phase_type=PhaseType.STABILIZATION)
        assert _make_executor([phase], stub_analyzer).check_prerequisites(phase).satisfied

    def test_implementation_gate_needs_prior_improvement(self, stub_analyzer):
        p1 = _phase("p1", status=PhaseStatus.COMPLETED, health_improvement=19)
        p2 = _phase("p2", order=2, phase_type=PhaseType.IMPLEMENTATION)
        executor = _make_executor([p1, p2], stub_analyzer)
        assert not executor.check_prerequisites(p2).satisfied
        p1.health_improvement = 20
        assert executor.check_prerequisites(p2).satisfied

    def test_validation_gate_needs_implementation_completed(self, stub_analyzer):
        p1 = _phase("p1", phase_type=PhaseType.IMPLEMENTATION, status=PhaseStatus.FAILED)
        p2 = _phase("p2", order=2, phase_type=PhaseType.VALIDATION)
        check = _make_executor([p1, p2], stub_analyzer).check_prerequisites(p2)
        assert check.reasons == ("Implementation phases not completed: p1",)

    @pytest.mark.asyncio
    async def test_skip_validation_bypasses_checks(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)
        result = await executor.execute_phase("p2", ExecutionOptions(skip_validation=True))
        assert result.status == PhaseStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_phase(self, stub_analyzer):
        executor = _make_executor([_phase("p1")], stub_analyzer)
        with pytest.raises(PhaseNotFoundError):
            await executor.execute_phase("p9")

    @pytest.mark.asyncio
    async def test_executing_phase_cannot_start_again(self, stub_analyzer):
        phase = _phase("p1", status=PhaseStatus.EXECUTING)
        executor = _make_executor([phase], stub_analyzer)
        with pytest.raises(PrerequisiteError, match="already executing"):
            await executor.execute_phase("p1")


class TestReadiness:
    def test_unblocked_phases_start_ready(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        p3 = _phase("p3", order=3, blocked_by=["p1"])
        _make_executor([p1, p2, p3], stub_analyzer)
        assert [p.status for p in (p1, p2, p3)] == [
            PhaseStatus.READY, PhaseStatus.PENDING, PhaseStatus.PENDING,
        ]

    @pytest.mark.asyncio
    async def test_dependents_become_ready_after_completion(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)

        await executor.execute_phase("p1")

        assert p2.status == PhaseStatus.READY
        assert executor.refresh_readiness() == []

    def test_ready_phase_drops_back_when_blocker_reactivates(self, stub_analyzer):
        p1 = _phase("p1", status=PhaseStatus.FAILED)
        p2 = _phase("p2", order=2, blocked_by=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)
        assert p2.status == PhaseStatus.READY

        p1.status = PhaseStatus.EXECUTING
        executor.refresh_readiness()

        assert p2.status == PhaseStatus.PENDING


# ── Sequential execution ─────────────────────────────────────────────


class TestSequentialExecution:
    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, stub_analyzer):
        tasks = [_task("ok-1"), _task("fail"), _task("ok-2")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"fail"}),
        )

        result = await executor.execute_phase("p1")

        assert result.tasks_executed == 2
        assert result.tasks_succeeded == 1
        assert result.tasks_failed == 1
        assert tasks[1].status == TaskStatus.FAILED
        assert tasks[2].status == TaskStatus.PENDING
        assert "boom" in tasks[1].error_output

    @pytest.mark.asyncio
    async def test_partial_success_completes_phase_by_default(self, stub_analyzer):
        tasks = [_task("ok-1"), _task("fail")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"fail"}),
        )
        result = await executor.execute_phase("p1")
        assert result.status == PhaseStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_strict_policy_fails_partial_phase(self, stub_analyzer):
        tasks = [_task("ok-1"), _task("fail")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"fail"}),
            partial_success_completes_phase=False,
        )
        result = await executor.execute_phase("p1")
        assert result.status == PhaseStatus.FAILED
        assert executor.session.status == SessionStatus.FAILED

    @pytest.mark.asyncio
    async def test_force_execution_runs_every_task(self, stub_analyzer):
        tasks = [_task("ok-1"), _task("fail"), _task("ok-2")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"fail"}),
        )
        result = await executor.execute_phase("p1", ExecutionOptions(force_execution=True))
        assert result.tasks_executed == 3
        assert result.health_improvement == 10

    @pytest.mark.asyncio
    async def test_all_tasks_failing_fails_phase_and_session(self, stub_analyzer):
        events = []
        executor = _make_executor(
            [_phase("p1", tasks=[_task("fail")])], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"fail"}), events=events,
        )
        result = await executor.execute_phase("p1")
        assert result.status == PhaseStatus.FAILED
        assert executor.session.status == SessionStatus.FAILED
        assert isinstance(events[-1], PhaseFailed)

    @pytest.mark.asyncio
    async def test_empty_phase_completes(self, stub_analyzer):
        executor = _make_executor([_phase("p1", tasks=[])], stub_analyzer)
        result = await executor.execute_phase("p1")
        assert result.status == PhaseStatus.COMPLETED
        assert executor.session.status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_timeout_marks_phase_and_session_failed(self, stub_analyzer):
        tasks = [_task("t1"), _task("t2")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(delay=0.02),
        )

        with pytest.raises(PhaseTimeoutError) as exc_info:
            await executor.execute_phase("p1", ExecutionOptions(timeout_ms=1))

        assert isinstance(exc_info.value, TimeoutError)
        assert executor.session.get_phase("p1").status == PhaseStatus.FAILED
        assert executor.session.status == SessionStatus.FAILED
        assert tasks[1].status == TaskStatus.PENDING
        assert executor.active_executions == {}

    @pytest.mark.asyncio
    async def test_progress_recomputed_after_phase(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)

        await executor.execute_phase("p1")

        session = executor.session
        assert session.overall_progress == 50
        assert session.health_improvement == 5
        assert session.current_health_score == 35
        assert session.status == SessionStatus.EXECUTING
        assert session.current_phase == "p1"

    @pytest.mark.asyncio
    async def test_completed_phase_cannot_run_again(self, stub_analyzer):
        p1 = _phase("p1")
        p2 = _phase("p2", order=2, depends_on=["p1"])
        executor = _make_executor([p1, p2], stub_analyzer)
        await executor.execute_phase("p1")
        await executor.execute_phase("p2")

        with pytest.raises(PrerequisiteError, match="already completed"):
            await executor.execute_phase("p1", ExecutionOptions(skip_validation=True))

        assert (p1.status, p2.status) == (PhaseStatus.COMPLETED, PhaseStatus.COMPLETED)
        assert executor.session.status == SessionStatus.COMPLETED
        assert executor.session.overall_progress == 100

    @pytest.mark.asyncio
    async def test_failed_phase_reruns_with_fresh_task_state(self, stub_analyzer):
        failing = {"t1"}
        executor = _make_executor(
            [_phase("p1", tasks=[_task("t1")])], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing=failing),
        )
        first = await executor.execute_phase("p1")
        failing.clear()
        second = await executor.execute_phase("p1")

        assert first.status == PhaseStatus.FAILED
        assert second.status == PhaseStatus.COMPLETED
        phase = executor.session.get_phase("p1")
        assert phase.completed_tasks == 1
        assert phase.health_improvement == 5
        assert executor.session.status == SessionStatus.COMPLETED


# ── Parallel execution ───────────────────────────────────────────────


class TestParallelExecution:
    def test_create_batches(self):
        tasks = [_task(f"t{i}") for i in range(10)]
        batches = PhaseExecutor.create_batches(tasks, 4)
        assert [len(b) for b in batches] == [4, 4, 2]
        assert [t.task_id for t in batches[2]] == ["t8", "t9"]

    def test_create_batches_empty(self):
        assert PhaseExecutor.create_batches([], 4) == []

    @pytest.mark.asyncio
    async def test_batches_recorded(self, stub_analyzer):
        tasks = [_task(f"t{i}") for i in range(10)]
        executor = _make_executor([_phase("p1", tasks=tasks)], stub_analyzer)

        result = await executor.execute_phase(
            "p1", ExecutionOptions(parallel=True, max_concurrency=4),
        )

        assert [len(b) for b in result.batches] == [4, 4, 2]
        assert result.tasks_executed == 10
        assert result.health_improvement == 50

    @pytest.mark.asyncio
    async def test_failed_batch_stops_later_batches(self, stub_analyzer):
        tasks = [_task(f"t{i}") for i in range(6)]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"t1"}),
        )

        result = await executor.execute_phase(
            "p1", ExecutionOptions(parallel=True, max_concurrency=3),
        )

        # every task of the first batch settles; the second never starts
        assert result.tasks_executed == 3
        assert len(result.batches) == 1
        assert all(t.status == TaskStatus.PENDING for t in tasks[3:])

    @pytest.mark.asyncio
    async def test_force_execution_runs_every_batch(self, stub_analyzer):
        tasks = [_task(f"t{i}") for i in range(6)]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"t1"}),
        )
        result = await executor.execute_phase(
            "p1", ExecutionOptions(parallel=True, max_concurrency=3, force_execution=True),
        )
        assert result.tasks_executed == 6
        assert result.tasks_failed == 1


# ── Cancellation ─────────────────────────────────────────────────────


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_running_phase(self, stub_analyzer):
        gate = asyncio.Event()

        async def dispatch(task, options):
            if task.task_id == "t1":
                await gate.wait()
            return TaskExecutionResult(task_id=task.task_id, success=True, health_improvement=5)

        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(side_effect=dispatch)
        events = []
        tasks = [_task("t1"), _task("t2"), _task("t3")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer, dispatcher=dispatcher, events=events,
        )

        running = asyncio.create_task(executor.execute_phase("p1"))
        await asyncio.sleep(0)
        execution_id = next(iter(executor.active_executions))

        cancellation = executor.cancel_phase(execution_id)
        gate.set()
        result = await running

        assert cancellation.cancelled
        assert cancellation.cleanup_performed
        assert result.status == PhaseStatus.CANCELLED
        assert result.tasks_executed == 1
        assert executor.session.get_phase("p1").status == PhaseStatus.CANCELLED
        assert tasks[1].status == TaskStatus.PENDING
        cancelled = [e for e in events if isinstance(e, PhaseCancelled)]
        assert cancelled[0].pending_tasks == ["t2", "t3"]
        assert executor.session.status == SessionStatus.CANCELLED
        assert executor.session.end_time is not None
        assert executor.owns_execution(execution_id)

    def test_cancel_unknown_execution(self, stub_analyzer):
        result = _make_executor([_phase("p1")], stub_analyzer).cancel_phase("exec-nope")
        assert not result.cancelled
        assert "not found" in result.reason

    @pytest.mark.asyncio
    async def test_finished_executions_stay_owned(self, stub_analyzer):
        executor = _make_executor([_phase("p1")], stub_analyzer)
        result = await executor.execute_phase("p1")
        assert executor.active_executions == {}
        assert executor.owns_execution(result.execution_id)
        assert not executor.owns_execution("exec-nope")

    @pytest.mark.asyncio
    async def test_cancel_finished_execution(self, stub_analyzer):
        executor = _make_executor([_phase("p1")], stub_analyzer)
        result = await executor.execute_phase("p1")
        cancellation = executor.cancel_phase(result.execution_id)
        assert not cancellation.cancelled
        assert "completed" in cancellation.reason


# ── Validation criteria ──────────────────────────────────────────────


class TestValidationCriteria:
    @pytest.mark.asyncio
    async def test_unknown_criterion_fails_task(self, stub_analyzer):
        task = _task("t1", validation_required=True, validation_criteria=["looks_good"])
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions())
        assert not result.success
        assert "looks_good" in result.error_output

    @pytest.mark.asyncio
    async def test_failed_criterion_is_warning_under_force(self, stub_analyzer):
        task = _task("t1", validation_required=True, validation_criteria=["artifacts_present"])
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions(force_execution=True))
        assert result.success
        assert len(result.warnings) == 1
        assert task.warnings == result.warnings

    @pytest.mark.asyncio
    async def test_module_criteria_skipped_in_dry_run(self, stub_analyzer):
        task = _task(
            "t1", target_modules=["auth"],
            validation_required=True, validation_criteria=["no_critical_errors"],
        )
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions(dry_run=True))
        assert result.success
        stub_analyzer.analyze_module.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_health_score_threshold(self, stub_analyzer):
        task = _task(
            "t1", target_modules=["auth"],
            validation_required=True, validation_criteria=["health_score>=50"],
        )
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions())
        assert not result.success
        assert "health score 30 < 50" in result.error_output

    @pytest.mark.asyncio
    async def test_health_improved_passes(self, stub_analyzer):
        task = _task("t1", validation_required=True, validation_criteria=["health_improved"])
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions())
        assert result.success
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_task_criteria_do_not_analyze_modules(self, stub_analyzer):
        task = _task(
            "t1", target_modules=["auth"],
            validation_required=True, validation_criteria=["health_improved"],
        )
        executor = _make_executor([_phase("p1", tasks=[task])], stub_analyzer)
        result = await executor.execute_task(task, ExecutionOptions())
        assert result.success
        stub_analyzer.analyze_module.assert_not_awaited()


# ── Events and projections ───────────────────────────────────────────


class TestEventsAndProjections:
    @pytest.mark.asyncio
    async def test_event_sequence(self, stub_analyzer):
        events = []
        tasks = [_task("t1"), _task("t2")]
        executor = _make_executor(
            [_phase("p1", tasks=tasks)], stub_analyzer,
            dispatcher=_scripted_dispatcher(failing={"t2"}), events=events,
        )
        await executor.execute_phase("p1", ExecutionOptions(force_execution=True))
        assert [type(e) for e in events] == [
            PhaseStarted, TaskCompleted, TaskFailed, PhaseCompleted,
        ]
        assert events[0].to_dict()["event_type"] == "phase_started"
        assert events[-1].tasks_failed == 1

    @pytest.mark.asyncio
    async def test_monitor_progress(self, stub_analyzer):
        executor = _make_executor(
            [_phase("p1"), _phase("p2", order=2, depends_on=["p1"])], stub_analyzer,
        )
        await executor.execute_phase("p1")
        progress = executor.monitor_progress()
        assert progress["overall_progress"] == 50
        assert progress["completed_phases"] == 1
        assert progress["total_phases"] == 2
        assert progress["current_health_score"] == 35
        assert progress["active_executions"] == []

    def test_get_phases(self, stub_analyzer):
        executor = _make_executor([_phase("p1")], stub_analyzer)
        phases = executor.get_phases()
        assert phases[0]["phase_id"] == "p1"
        assert phases[0]["status"] == "ready"


# ── TaskDispatcher ───────────────────────────────────────────────────


class TestTaskDispatcher:
    @pytest.mark.asyncio
    async def test_dry_run_returns_nominal_result(self, stub_analyzer, tmp_path):
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)
        result = await dispatcher.dispatch(
            _task("t1", TaskType.REPAIR, target_modules=["auth"]), ExecutionOptions(dry_run=True),
        )
        assert result.success
        assert result.health_improvement == 15
        assert result.output.startswith("[dry-run] Would execute repair task")

    @pytest.mark.asyncio
    async def test_analysis_reanalyzes_targets(self, stub_analyzer, tmp_path):
        stub_analyzer.analyze_workspace.return_value = MagicMock(overall_health_score=42)
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)
        result = await dispatcher.dispatch(
            _task("t1", TaskType.ANALYSIS, target_modules=["auth"]), ExecutionOptions(),
        )
        stub_analyzer.analyze_workspace.assert_awaited_once_with(["auth"])
        assert result.health_improvement == 5
        assert result.artifacts == ["analysis-report.json"]
        assert "42/100" in result.output

    @pytest.mark.asyncio
    async def test_repair_without_collaborator_raises(self, stub_analyzer, tmp_path):
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)
        with pytest.raises(TaskExecutionError):
            await dispatcher.dispatch(
                _task("t1", TaskType.REPAIR, target_modules=["auth"]), ExecutionOptions(),
            )

    @pytest.mark.asyncio
    async def test_repair_delegates_to_module_recovery(self, stub_analyzer, tmp_path):
        recovery = MagicMock()
        recovery.execute_recovery = AsyncMock(return_value=RecoveryResult(
            module_id="auth",
            strategy=RecoveryStrategy.REBUILD,
            success=True,
            health_improvement=20,
            phases=[RecoveryStepResult(phase="configuration-repair", success=True, errors_resolved=2)],
            artifacts=["packages/auth/tsconfig.json"],
        ))
        dispatcher = TaskDispatcher(
            analyzer=stub_analyzer,
            workspace_path=tmp_path,
            module_recovery=recovery,
            strategy=RecoveryStrategy.REBUILD,
            recovery_context=RecoveryContext(dry_run=True, target_health_score=70),
        )

        result = await dispatcher.dispatch(
            _task("t1", TaskType.REPAIR, target_modules=["auth"]), ExecutionOptions(),
        )

        module_id, strategy, context = recovery.execute_recovery.await_args.args
        assert (module_id, strategy) == ("auth", RecoveryStrategy.REBUILD)
        assert context.dry_run is False
        assert context.target_health_score == 70
        assert result.success
        assert result.health_improvement == 20
        assert result.errors_resolved == 2

    @pytest.mark.asyncio
    async def test_repair_without_progress_fails(self, stub_analyzer, tmp_path):
        recovery = MagicMock()
        recovery.execute_recovery = AsyncMock(return_value=RecoveryResult(
            module_id="auth", strategy=RecoveryStrategy.REPAIR, success=False,
        ))
        dispatcher = TaskDispatcher(
            analyzer=stub_analyzer, workspace_path=tmp_path, module_recovery=recovery,
        )
        result = await dispatcher.dispatch(
            _task("t1", TaskType.REPAIR, target_modules=["auth"]), ExecutionOptions(),
        )
        assert not result.success
        assert "auth" in result.error_output

    @pytest.mark.asyncio
    async def test_build_runs_command_per_module(self, stub_analyzer, tmp_path):
        runner = MagicMock()
        runner.run = AsyncMock(return_value=CommandResult(returncode=0))
        dispatcher = TaskDispatcher(
            analyzer=stub_analyzer, workspace_path=tmp_path, command_runner=runner,
        )

        result = await dispatcher.dispatch(
            _task("t1", TaskType.BUILD, target_modules=["auth"]), ExecutionOptions(),
        )

        runner.run.assert_awaited_once_with(
            ("npm", "run", "build"), tmp_path / "packages" / "auth", timeout_s=300.0,
        )
        assert result.errors_resolved == 1
        assert result.artifacts == ["build-output.log"]

    @pytest.mark.asyncio
    async def test_failing_test_command_raises(self, stub_analyzer, tmp_path):
        runner = MagicMock()
        runner.run = AsyncMock(return_value=CommandResult(returncode=1, stderr="2 failed"))
        dispatcher = TaskDispatcher(
            analyzer=stub_analyzer, workspace_path=tmp_path, command_runner=runner,
        )
        with pytest.raises(TaskExecutionError, match="auth: 2 failed"):
            await dispatcher.dispatch(
                _task("t1", TaskType.TEST, target_modules=["auth"]), ExecutionOptions(),
            )

    @pytest.mark.asyncio
    async def test_configuration_checks_targets(self, stub_analyzer, tmp_path):
        module_path = tmp_path / "packages" / "auth"
        module_path.mkdir(parents=True)
        (module_path / "package.json").write_text(json.dumps({"name": "auth"}), encoding="utf-8")
        (module_path / "tsconfig.json").write_text("{}", encoding="utf-8")
        configs = ["packages/auth/package.json", "packages/auth/tsconfig.json"]
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)

        result = await dispatcher.dispatch(
            _task("t1", TaskType.CONFIGURATION, target_configurations=configs),
            ExecutionOptions(),
        )

        assert result.errors_resolved == 2
        assert result.artifacts == configs
        assert result.health_improvement == 12

    @pytest.mark.asyncio
    async def test_configuration_reports_broken_targets(self, stub_analyzer, tmp_path):
        module_path = tmp_path / "packages" / "auth"
        module_path.mkdir(parents=True)
        (module_path / "package.json").write_text("{broken", encoding="utf-8")
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)
        task = _task("t1", TaskType.CONFIGURATION, target_configurations=[
            "packages/auth/package.json", "packages/auth/tsconfig.json",
        ])
        with pytest.raises(TaskExecutionError) as exc_info:
            await dispatcher.dispatch(task, ExecutionOptions())
        assert "packages/auth/tsconfig.json not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_validation_uses_validator(self, stub_analyzer, tmp_path):
        validator = MagicMock()
        validator.validate_single_module = AsyncMock(return_value=ModuleValidationResult(
            module_id="auth", is_valid=False, health_score=40,
        ))
        dispatcher = TaskDispatcher(
            analyzer=stub_analyzer, workspace_path=tmp_path, validator=validator,
        )
        with pytest.raises(TaskExecutionError, match=r"auth \(40\)"):
            await dispatcher.dispatch(
                _task("t1", TaskType.VALIDATION, target_modules=["auth"]), ExecutionOptions(),
            )

    @pytest.mark.asyncio
    async def test_validation_without_validator_is_nominal(self, stub_analyzer, tmp_path):
        dispatcher = TaskDispatcher(analyzer=stub_analyzer, workspace_path=tmp_path)
        result = await dispatcher.dispatch(
            _task("t1", TaskType.VALIDATION, target_modules=["auth"]), ExecutionOptions(),
        )
        assert result.success
        assert result.health_improvement == 3
