"""Tests for analytics entities and value objects."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from wsrecovery.domains.analytics import (
    ModuleRecoveryProfile,
    RecoveryAnalytics,
    RecoveryOperationRecord,
    Timeframe,
)
from wsrecovery.domains.module_recovery import (
    RecoveryContext,
    RecoveryResult,
    RecoveryStepResult,
)
from wsrecovery.domains.shared import RecoveryStrategy

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestPersistedDocuments:
    @pytest.mark.asyncio
    async def test_operation_record_survives_json(self):
        analytics = RecoveryAnalytics(clock=lambda: NOW)
        result = RecoveryResult(
            module_id="auth",
            strategy=RecoveryStrategy.REBUILD,
            success=False,
            phases=[RecoveryStepResult(phase="build-fix", success=False, errors=["tsc exited 2"])],
            initial_health_score=20,
            final_health_score=20,
            execution_time_ms=150000,
            total_errors=1,
            start_time=NOW - timedelta(minutes=5),
            end_time=NOW,
        )
        record = await analytics.record_recovery_operation(
            "op-1", "auth", RecoveryStrategy.REBUILD, result, RecoveryContext(dry_run=True),
        )

        restored = RecoveryOperationRecord.from_dict(json.loads(json.dumps(record.to_dict())))

        assert restored == record
        assert [i.title for i in restored.insights] == [
            "Phase Failures Detected", "Slow Recovery Performance",
        ]

    def test_profile_survives_json(self):
        profile = ModuleRecoveryProfile(
            module_id="auth",
            total_operations=4,
            success_rate=0.75,
            average_duration_ms=12000.0,
            average_health_improvement=22.5,
            most_effective_strategy=RecoveryStrategy.RESET,
            recommended_strategy="Use reset strategy with monitoring",
            risk_factors=["Frequent full resets required"],
            last_analyzed=NOW,
        )
        assert ModuleRecoveryProfile.from_dict(json.loads(json.dumps(profile.to_dict()))) == profile


class TestTimeframe:
    def test_named_week(self):
        timeframe = Timeframe.named("Week", NOW)
        assert timeframe.start == NOW - timedelta(days=7)
        assert timeframe.contains(NOW - timedelta(days=6))
        assert not timeframe.contains(NOW - timedelta(days=8))
        assert not timeframe.contains(NOW + timedelta(seconds=1))

    def test_all_is_unbounded(self):
        timeframe = Timeframe.named("all", NOW)
        assert timeframe.start is None
        assert timeframe.contains(datetime(2000, 1, 1, tzinfo=timezone.utc))
        assert timeframe.to_dict() == {"start": None, "end": NOW.isoformat()}

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown timeframe"):
            Timeframe.named("fortnight", NOW)

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError):
            Timeframe(end=NOW, start=NOW + timedelta(days=1))
