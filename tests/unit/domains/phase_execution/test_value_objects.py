"""Tests for phase_execution value objects."""
import pytest

from wsrecovery.domains.phase_execution import (
    NOMINAL_TASK_IMPROVEMENT,
    PLAN_TEMPLATES,
    ExecutionId,
    ExecutionOptions,
    PhaseStatus,
    PhaseType,
    PrerequisiteCheck,
    TaskType,
    ValidationCriterion,
)
from wsrecovery.domains.shared import RecoveryStrategy


class TestExecutionId:
    def test_generate_format(self):
        eid = ExecutionId.generate("phase-2")
        prefix, suffix = eid.value.rsplit("-", 1)
        assert prefix == "exec-phase-2"
        assert len(suffix) == 8
        int(suffix, 16)

    def test_generate_is_unique(self):
        assert ExecutionId.generate("p").value != ExecutionId.generate("p").value

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            ExecutionId("")

    def test_str(self):
        assert str(ExecutionId("exec-p-1")) == "exec-p-1"


class TestExecutionOptions:
    def test_defaults(self):
        options = ExecutionOptions()
        assert not options.parallel
        assert options.max_concurrency == 4
        assert options.timeout_ms is None

    @pytest.mark.parametrize("value", [0, -1])
    def test_max_concurrency_must_be_positive(self, value):
        with pytest.raises(ValueError, match="max_concurrency"):
            ExecutionOptions(max_concurrency=value)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError, match="timeout_ms"):
            ExecutionOptions(timeout_ms=0)


class TestPhaseStatus:
    @pytest.mark.parametrize("status", [PhaseStatus.PENDING, PhaseStatus.READY, PhaseStatus.EXECUTING])
    def test_active(self, status):
        assert status.is_active
        assert not status.is_terminal

    @pytest.mark.parametrize("status", [PhaseStatus.COMPLETED, PhaseStatus.FAILED, PhaseStatus.CANCELLED])
    def test_terminal(self, status):
        assert status.is_terminal
        assert not status.is_active

    def test_only_completed_and_executing_are_not_runnable(self):
        runnable = {s for s in PhaseStatus if s.is_runnable}
        assert runnable == {
            PhaseStatus.PENDING, PhaseStatus.READY, PhaseStatus.FAILED, PhaseStatus.CANCELLED,
        }


class TestPrerequisiteCheck:
    def test_ok(self):
        assert PrerequisiteCheck.ok() == PrerequisiteCheck(satisfied=True, reasons=())

    def test_failed_keeps_reasons_in_order(self):
        check = PrerequisiteCheck.failed("a", "b")
        assert not check.satisfied
        assert check.reasons == ("a", "b")


class TestValidationCriterion:
    def test_score_threshold(self):
        criterion = ValidationCriterion.parse("health_score >= 80")
        assert criterion.name == "health_score"
        assert criterion.threshold == 80
        assert str(criterion) == "health_score>=80"

    def test_named_criterion_is_normalized(self):
        criterion = ValidationCriterion.parse("  No_Critical_Errors ")
        assert criterion.name == "no_critical_errors"
        assert criterion.is_known
        assert criterion.needs_module_state

    def test_artifact_criterion_needs_no_module_state(self):
        assert not ValidationCriterion.parse("artifacts_present").needs_module_state

    def test_unknown(self):
        criterion = ValidationCriterion.parse("compiles_quickly")
        assert not criterion.is_known
        assert criterion.threshold is None


class TestPlanTemplates:
    def test_nominal_improvements(self):
        assert NOMINAL_TASK_IMPROVEMENT == {
            TaskType.ANALYSIS: 5,
            TaskType.REPAIR: 15,
            TaskType.BUILD: 10,
            TaskType.TEST: 8,
            TaskType.VALIDATION: 3,
            TaskType.CONFIGURATION: 12,
        }

    def test_repair_plan(self):
        templates = PLAN_TEMPLATES[RecoveryStrategy.REPAIR]
        assert [t.phase_type for t in templates] == [PhaseType.ANALYSIS, PhaseType.STABILIZATION]
        assert templates[1].task_types == (TaskType.REPAIR,)

    def test_every_plan_starts_with_analysis(self):
        for templates in PLAN_TEMPLATES.values():
            assert templates[0].phase_type == PhaseType.ANALYSIS

    def test_rebuild_and_reset_end_with_validation(self):
        for strategy in (RecoveryStrategy.REBUILD, RecoveryStrategy.RESET):
            assert PLAN_TEMPLATES[strategy][-1].phase_type == PhaseType.VALIDATION
