"""Recovery orchestration service.

``RecoveryService`` is the root orchestrator for one workspace. It turns a
module analysis into a phased recovery session, drives the session's
phases through a PhaseExecutor, and records every finished module
recovery in the analytics log.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from wsrecovery.container import ServiceContainer
from wsrecovery.domains.analytics import (
    ModuleRecoveryProfile,
    RecoveryPrediction,
    SystemRecoveryReport,
    Timeframe,
)
from wsrecovery.domains.health import ConfigurationReport, ModuleState, WorkspaceHealth
from wsrecovery.domains.module_recovery import (
    RecoveryContext,
    RecoveryOutcome,
    RecoveryResult,
    RecoveryStepResult,
    recover_modules,
)
from wsrecovery.domains.phase_execution import (
    CancellationResult,
    ExecutionOptions,
    PhaseExecutionResult,
    PhaseExecutor,
    PhaseStatus,
    RecoveryPhase,
    RecoverySession,
    SessionStatus,
    TaskDispatcher,
)
from wsrecovery.domains.reporting import ReportData, ReportInputs
from wsrecovery.domains.shared import (
    ModuleId,
    PhaseTimeoutError,
    PrerequisiteError,
    RecoveryStrategy,
    SessionNotFoundError,
    utc_now,
)
from wsrecovery.models.config_models import RecoveryConfig

logger = logging.getLogger(__name__)


@dataclass
class ModuleRecoveryRun:
    """A finished module recovery together with the ids it was tracked under."""
    session_id: str
    operation_id: str
    result: RecoveryResult

    def to_dict(self) -> Dict[str, Any]:
        d = self.result.to_dict()
        d["session_id"] = self.session_id
        d["operation_id"] = self.operation_id
        return d


def _phase_step(phase: RecoveryPhase, result: PhaseExecutionResult) -> RecoveryStepResult:
    errors = [
        r.error_output for r in result.task_results
        if not r.success and r.error_output
    ]
    return RecoveryStepResult(
        phase=phase.phase_type.value,
        success=phase.status == PhaseStatus.COMPLETED,
        health_improvement=result.health_improvement,
        errors_resolved=result.errors_resolved,
        duration_ms=result.duration_ms,
        output=f"{phase.phase_name}: {result.tasks_succeeded}/{result.tasks_executed} tasks succeeded",
        errors=errors,
        artifacts=list(result.artifacts),
    )


class RecoveryService:
    """Root orchestrator for recovering one workspace.

    Every collaborator comes from the workspace's ServiceContainer;
    sessions and their executors are tracked there too, so callers can
    drive a session phase by phase or recover a module in one call.
    """

    def __init__(
        self,
        container: ServiceContainer,
        event_publisher: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.container = container
        self.event_publisher = event_publisher

    @property
    def config(self) -> RecoveryConfig:
        return self.container.config

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def analyze_workspace(
        self,
        modules: Optional[List[str]] = None,
        include_recommendations: bool = True,
    ) -> WorkspaceHealth:
        return await self.container.analyzer.analyze_workspace(
            modules, include_recommendations=include_recommendations
        )

    def validate_configuration(self) -> ConfigurationReport:
        return self.container.analyzer.validate_configuration()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _create_executor(
        self,
        state: ModuleState,
        strategy: RecoveryStrategy,
        context: RecoveryContext,
    ) -> PhaseExecutor:
        session = RecoverySession.for_module(
            state.module_id, strategy, state.health_score
        )
        dispatcher = TaskDispatcher(
            analyzer=self.container.analyzer,
            workspace_path=self.container.workspace_path,
            module_recovery=self.container.module_recovery,
            validator=self.container.validator,
            command_runner=self.container.command_runner,
            strategy=strategy,
            recovery_context=context,
        )
        executor = PhaseExecutor(
            session=session,
            analyzer=self.container.analyzer,
            dispatcher=dispatcher,
            event_publisher=self.event_publisher,
        )
        self.container.register_executor(executor)
        logger.info(
            "Planned %s recovery for %s: session %s, %d phases",
            strategy.value, state.module_id, session.session_id, session.total_phases,
        )
        return executor

    async def plan_recovery(
        self,
        module_id: str,
        strategy: Optional[RecoveryStrategy] = None,
        context: Optional[RecoveryContext] = None,
    ) -> RecoverySession:
        """Analyze a module and create a tracked session for it.

        Without an explicit strategy the analyzer's recommendation is used.

        Raises:
            InvalidModuleError: If module_id is not a known module
        """
        ModuleId(module_id)
        state = await self.container.analyzer.analyze_module(module_id)
        strategy = RecoveryStrategy(strategy) if strategy else state.recovery_state.recovery_strategy
        executor = self._create_executor(state, strategy, context or self.config.recovery_context())
        return executor.session

    def get_executor(self, session_id: str) -> PhaseExecutor:
        """Return the executor owning a session.

        Raises:
            SessionNotFoundError: If the session is not tracked
        """
        executor = self.container.get_executor(session_id)
        if executor is None:
            raise SessionNotFoundError(session_id)
        return executor

    async def execute_phase(
        self,
        session_id: str,
        phase_id: str,
        options: Optional[ExecutionOptions] = None,
    ) -> PhaseExecutionResult:
        """Execute one phase of a tracked session.

        Raises:
            SessionNotFoundError: If the session is not tracked
            PhaseNotFoundError: If the phase is not in the session's plan
            PrerequisiteError: If the phase may not start yet
            PhaseTimeoutError: If a sequential run exceeds its timeout
        """
        executor = self.get_executor(session_id)
        return await executor.execute_phase(phase_id, options or self.config.execution_options())

    def cancel_phase(self, execution_id: str) -> CancellationResult:
        """Request cancellation of a running phase execution. Never raises."""
        executor = self.container.find_executor_for_execution(execution_id)
        if executor is None:
            return CancellationResult(cancelled=False, reason=f"Execution not found: {execution_id}")
        return executor.cancel_phase(execution_id)

    def get_progress(self, session_id: str) -> Dict[str, Any]:
        executor = self.get_executor(session_id)
        progress = executor.monitor_progress()
        progress["module_id"] = executor.session.module_id
        progress["strategy"] = executor.session.strategy.value if executor.session.strategy else None
        progress["phases"] = executor.get_phases()
        return progress

    # ------------------------------------------------------------------
    # Module recovery
    # ------------------------------------------------------------------

    async def recover_module(
        self,
        module_id: str,
        strategy: Optional[RecoveryStrategy] = None,
        context: Optional[RecoveryContext] = None,
        parallel: bool = False,
    ) -> ModuleRecoveryRun:
        """Recover one module by running its session's phases in order.

        Phases run until one does not complete. In dry-run mode the final
        score is the session's nominal score; otherwise the module is
        analyzed again. The run is recorded in the analytics log.

        Raises:
            InvalidModuleError: If module_id is not a known module
        """
        ModuleId(module_id)
        context = context or self.config.recovery_context()
        start = time.monotonic()
        started_at = utc_now()

        initial = await self.container.analyzer.analyze_module(module_id)
        strategy = RecoveryStrategy(strategy) if strategy else initial.recovery_state.recovery_strategy
        executor = self._create_executor(initial, strategy, context)
        session = executor.session
        options = self.config.execution_options(dry_run=context.dry_run, parallel=parallel)

        steps: List[RecoveryStepResult] = []
        errors: List[str] = []
        artifacts: List[str] = []
        for phase in session.recovery_plan:
            elapsed_ms = (time.monotonic() - start) * 1000
            if elapsed_ms > context.timeout_ms:
                errors.append(f"Recovery timed out after {context.timeout_ms}ms")
                session.fail()
                break
            try:
                phase_result = await executor.execute_phase(phase.phase_id, options)
            except (PrerequisiteError, PhaseTimeoutError) as e:
                logger.warning("Recovery of %s stopped at %s: %s", module_id, phase.phase_id, e)
                steps.append(RecoveryStepResult(
                    phase=phase.phase_type.value, success=False, errors=[str(e)],
                ))
                errors.append(str(e))
                session.fail()
                break
            step = _phase_step(phase, phase_result)
            steps.append(step)
            errors.extend(step.errors)
            artifacts.extend(step.artifacts)
            if phase.status != PhaseStatus.COMPLETED:
                break

        if context.dry_run:
            final_score = session.current_health_score
        else:
            final_score = (await self.container.analyzer.analyze_module(module_id)).health_score

        improvement = final_score - initial.health_score
        success = (
            session.status == SessionStatus.COMPLETED
            and final_score >= context.target_health_score
        )
        if success:
            outcome = RecoveryOutcome.COMPLETED
        elif improvement > 0:
            outcome = RecoveryOutcome.PARTIAL
        else:
            outcome = RecoveryOutcome.FAILED

        result = RecoveryResult(
            module_id=module_id,
            strategy=strategy,
            success=success,
            phases=steps,
            initial_health_score=initial.health_score,
            final_health_score=final_score,
            health_improvement=improvement,
            execution_time_ms=int((time.monotonic() - start) * 1000),
            total_errors=len(errors),
            artifacts=artifacts,
            outcome=outcome,
            start_time=started_at,
            end_time=utc_now(),
        )
        operation_id = f"op-{module_id}-{uuid.uuid4().hex[:8]}"
        await self.container.analytics.record_recovery_operation(
            operation_id, module_id, strategy, result, context,
        )
        logger.info(
            "Recovery of %s (%s) %s: %d -> %d",
            module_id, strategy.value, outcome.value, initial.health_score, final_score,
        )
        return ModuleRecoveryRun(session.session_id, operation_id, result)

    async def execute_recovery(
        self, module_id: str, strategy: RecoveryStrategy, context: RecoveryContext,
    ) -> RecoveryResult:
        """Module-recovery collaborator interface over ``recover_module``."""
        run = await self.recover_module(module_id, strategy, context)
        return run.result

    async def recover_modules(
        self,
        module_ids: Optional[Iterable[str]] = None,
        strategy: RecoveryStrategy = RecoveryStrategy.REPAIR,
        context: Optional[RecoveryContext] = None,
        parallel: bool = False,
        fail_fast: bool = False,
    ) -> Dict[str, RecoveryResult]:
        """Recover several modules, core and foundation modules first.

        Without explicit ids every module the last workspace analysis
        flagged for recovery is recovered.
        """
        if module_ids is None:
            health = await self.analyze_workspace(include_recommendations=False)
            module_ids = health.modules_needing_recovery
        module_ids = list(module_ids)
        for module_id in module_ids:
            ModuleId(module_id)
        return await recover_modules(
            self,
            module_ids,
            RecoveryStrategy(strategy),
            context or self.config.recovery_context(),
            parallel=parallel,
            max_concurrency=self.config.MAX_CONCURRENCY,
            fail_fast=fail_fast,
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def predict_recovery(self, module_id: str, strategy: RecoveryStrategy) -> RecoveryPrediction:
        ModuleId(module_id)
        return self.container.analytics.predict_recovery_outcome(module_id, strategy)

    async def get_system_report(self, timeframe: str = "week") -> SystemRecoveryReport:
        return await self.container.analytics.generate_system_report(
            Timeframe.named(timeframe, utc_now())
        )

    def get_module_profile(self, module_id: str) -> Optional[ModuleRecoveryProfile]:
        ModuleId(module_id)
        return self.container.analytics.get_module_profile(module_id)

    def get_system_stats(self) -> Dict[str, Any]:
        return self.container.analytics.get_system_stats()

    def export_analytics(self, export_format: str = "json") -> str:
        return self.container.analytics.export_data(export_format)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def build_report_data(
        self,
        template_id: str = "comprehensive",
        timeframe: str = "week",
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
    ) -> ReportData:
        """Assemble a report payload from health and analytics data.

        Raises:
            ReportTemplateNotFoundError: If template_id is unknown
        """
        window = Timeframe.named(timeframe, utc_now())
        analyzer = self.container.analyzer
        analytics = self.container.analytics
        health = analyzer.last_workspace_health or await self.analyze_workspace()
        inputs = ReportInputs(
            workspace_health=health,
            system_report=await analytics.generate_system_report(window),
            operations=[op for op in analytics.operations if window.contains(op.start_time)],
            validation=analyzer.validate_configuration(),
            module_profiles=analytics.module_profiles(),
        )
        return self.container.report_builder.build(
            template_id, inputs, window, title=title, subtitle=subtitle,
        )

    async def generate_report(
        self,
        template_id: str = "comprehensive",
        timeframe: str = "week",
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
    ) -> Path:
        """Build a report and hand it to the reporting collaborator.

        Returns:
            Path of the written report

        Raises:
            ReportTemplateNotFoundError: If template_id is unknown
            ReportWriteError: If the report could not be written
        """
        report = await self.build_report_data(template_id, timeframe, title, subtitle)
        return self.container.report_writer.render(report)
