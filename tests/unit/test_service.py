"""Tests for RecoveryService orchestration over a stubbed analyzer."""
import json

import pytest

from wsrecovery.container import ServiceContainer
from wsrecovery.domains.health import WorkspaceHealth
from wsrecovery.domains.module_recovery import RecoveryContext, RecoveryOutcome
from wsrecovery.domains.phase_execution import PhaseStatus, SessionStatus
from wsrecovery.domains.shared import (
    InvalidModuleError,
    RecoveryStrategy,
    ReportTemplateNotFoundError,
    SessionNotFoundError,
)
from wsrecovery.models.config_models import RecoveryConfig
from wsrecovery.service import RecoveryService


# ── Helpers ──────────────────────────────────────────────────────────


def _make_service(stub_analyzer, tmp_path, events=None):
    container = ServiceContainer(
        config=RecoveryConfig(WORKSPACE=str(tmp_path), PERSIST_ANALYTICS=False),
        _analyzer=stub_analyzer,
    )
    publisher = events.append if events is not None else None
    return RecoveryService(container, event_publisher=publisher)


DRY_RUN = RecoveryContext(target_health_score=80, dry_run=True)


class TestRecoverModule:
    @pytest.mark.asyncio
    async def test_dry_run_repair_falls_short_of_target(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)

        run = await service.recover_module("auth", RecoveryStrategy.REPAIR, DRY_RUN)

        result = run.result
        # analysis 5 + repair 15 on top of 30
        assert result.initial_health_score == 30
        assert result.final_health_score == 50
        assert result.health_improvement == 20
        assert not result.success
        assert result.outcome == RecoveryOutcome.PARTIAL
        assert [s.phase for s in result.phases] == ["analysis", "stabilization"]
        assert all(s.success for s in result.phases)

        assert run.session_id.startswith("session-")
        assert run.operation_id.startswith("op-auth-")
        operations = service.container.analytics.operations
        assert [op.operation_id for op in operations] == [run.operation_id]
        data = run.to_dict()
        assert data["session_id"] == run.session_id
        json.dumps(data)

    @pytest.mark.asyncio
    async def test_recommended_strategy_reaches_target(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)

        run = await service.recover_module("auth", context=DRY_RUN)

        # score 30 with critical errors is rebuilt
        assert run.result.strategy == RecoveryStrategy.REBUILD
        assert run.result.final_health_score == 83
        assert run.result.success
        assert run.result.outcome == RecoveryOutcome.COMPLETED
        executor = service.get_executor(run.session_id)
        assert executor.session.status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_events_are_published(self, stub_analyzer, tmp_path):
        events = []
        service = _make_service(stub_analyzer, tmp_path, events)
        await service.recover_module("auth", RecoveryStrategy.REPAIR, DRY_RUN)
        assert events

    @pytest.mark.asyncio
    async def test_unknown_module(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        with pytest.raises(InvalidModuleError):
            await service.recover_module("billing", RecoveryStrategy.REPAIR, DRY_RUN)
        stub_analyzer.analyze_module.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recover_modules_in_layer_order(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)

        results = await service.recover_modules(
            ["payments", "auth"], RecoveryStrategy.REPAIR, DRY_RUN,
        )

        assert list(results) == ["auth", "payments"]
        assert len(service.container.analytics.operations) == 2

    @pytest.mark.asyncio
    async def test_recover_modules_rejects_unknown_ids(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        with pytest.raises(InvalidModuleError):
            await service.recover_modules(["auth", "billing"], context=DRY_RUN)


class TestPhaseByPhase:
    @pytest.mark.asyncio
    async def test_plan_execute_progress(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        session = await service.plan_recovery("auth", RecoveryStrategy.REPAIR, DRY_RUN)
        options = service.config.execution_options(dry_run=True)

        result = await service.execute_phase(session.session_id, "phase-1", options)

        assert result.status == PhaseStatus.COMPLETED
        progress = service.get_progress(session.session_id)
        assert progress["module_id"] == "auth"
        assert progress["strategy"] == "repair"
        assert progress["overall_progress"] == 50
        assert progress["current_health_score"] == 35
        assert [p["status"] for p in progress["phases"]] == ["completed", "ready"]

    @pytest.mark.asyncio
    async def test_plan_uses_recommendation(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        session = await service.plan_recovery("auth")
        assert session.strategy == RecoveryStrategy.REBUILD
        assert session.total_phases == 4

    @pytest.mark.asyncio
    async def test_unknown_session(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        with pytest.raises(SessionNotFoundError):
            await service.execute_phase("session-missing", "phase-1")
        with pytest.raises(SessionNotFoundError):
            service.get_progress("session-missing")

    def test_cancel_unknown_execution(self, stub_analyzer, tmp_path):
        result = _make_service(stub_analyzer, tmp_path).cancel_phase("exec-missing")
        assert not result.cancelled
        assert "exec-missing" in result.reason


class TestAnalyticsAndReports:
    @pytest.mark.asyncio
    async def test_prediction_uses_history(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        assert service.predict_recovery("auth", RecoveryStrategy.REPAIR).confidence == 0

        await service.recover_module("auth", RecoveryStrategy.REPAIR, DRY_RUN)

        prediction = service.predict_recovery("auth", RecoveryStrategy.REPAIR)
        # the partial repair counts as a failure so the default improvement stands
        assert prediction.predicted_success_rate == 0
        assert prediction.predicted_health_improvement == 30
        assert prediction.confidence > 0
        profile = service.get_module_profile("auth")
        assert profile.total_operations == 1
        assert service.get_module_profile("payments") is None

    @pytest.mark.asyncio
    async def test_system_report_and_export(self, stub_analyzer, tmp_path):
        service = _make_service(stub_analyzer, tmp_path)
        await service.recover_module("auth", RecoveryStrategy.REPAIR, DRY_RUN)

        report = await service.get_system_report("day")
        exported = json.loads(service.export_analytics())

        assert report.summary.total_operations == 1
        assert len(exported["operations"]) == 1
        assert service.get_system_stats()["total_operations"] == 1

    @pytest.mark.asyncio
    async def test_generate_report(self, stub_analyzer, make_module_state, tmp_path):
        stub_analyzer.last_workspace_health = WorkspaceHealth.create(
            str(tmp_path), {"auth": make_module_state("auth")},
        )
        service = _make_service(stub_analyzer, tmp_path)

        path = await service.generate_report("executive", "week")

        assert path.parent == tmp_path.resolve() / "reports" / "json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["template_id"] == "executive"
        stub_analyzer.analyze_workspace.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_report_template(self, stub_analyzer, make_module_state, tmp_path):
        stub_analyzer.last_workspace_health = WorkspaceHealth.create(
            str(tmp_path), {"auth": make_module_state("auth")},
        )
        service = _make_service(stub_analyzer, tmp_path)
        with pytest.raises(ReportTemplateNotFoundError):
            await service.generate_report("quarterly")
