"""Analytics Domain Services.

``RecoveryAnalytics`` keeps the operation log and the per-module profiles
derived from it. Profiles are always recomputed from the full log for the
module, never adjusted incrementally. Persistence goes through a document
store; its failures are logged and never reach the recovery that
triggered the recording.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import (
    Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence,
    runtime_checkable,
)

from wsrecovery.domains.module_recovery.entities import RecoveryResult
from wsrecovery.domains.module_recovery.value_objects import RecoveryContext
from wsrecovery.domains.shared.kernel import KNOWN_MODULES, RecoveryStrategy, utc_now

from .entities import (
    ModuleRecoveryProfile,
    RecoveryInsight,
    RecoveryMetrics,
    RecoveryOperationRecord,
    RecoveryPrediction,
    RecoveryTrend,
    ReportSummary,
    StrategyAlternative,
    SystemRecoveryReport,
    TrendPoint,
)
from .value_objects import (
    NEUTRAL_RESOURCE_UTILIZATION,
    RISK_DECLINING_SUCCESS,
    RISK_FREQUENT_RESETS,
    RISK_HIGH_FAILURE_RATE,
    RISK_POOR_IMPROVEMENT,
    RISK_SLOW_RECOVERY,
    STRATEGY_CONS,
    STRATEGY_PROS,
    InsightSeverity,
    InsightThresholds,
    InsightType,
    PredictionDefaults,
    ReportThresholds,
    RiskThresholds,
    Timeframe,
)

logger = logging.getLogger(__name__)

OPERATIONS_NAMESPACE = "operations"
PROFILES_NAMESPACE = "profiles"
REPORTS_NAMESPACE = "reports"
EXPORTS_NAMESPACE = "exports"


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """Protocol for keyed JSON document persistence."""
    def store(self, namespace: str, key: str, value: Dict[str, Any]) -> bool: ...

    def retrieve_all(self, namespace: str) -> List[Dict[str, Any]]: ...


# ── Pure derivations ──────────────────────────────────────────────────

def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _success_rate(ops: Sequence[RecoveryOperationRecord]) -> float:
    return sum(1 for op in ops if op.success) / len(ops) if ops else 0.0


def compute_metrics(
    result: RecoveryResult,
    history: Sequence[RecoveryOperationRecord],
    prior_success_rate: float,
    resource_utilization: float,
) -> RecoveryMetrics:
    """Derive metrics for a result against the module's earlier operations."""
    steps = result.phases
    time_to_first_success = float(result.execution_time_ms)
    elapsed = 0
    for step in steps:
        elapsed += step.duration_ms
        if step.success:
            time_to_first_success = float(elapsed)
            break

    execution_minutes = result.execution_time_ms / 60000
    efficiency = result.health_improvement / execution_minutes if execution_minutes > 0 else 0.0

    ordered = sorted(history, key=lambda op: op.start_time)
    gaps = [
        (ordered[i].start_time - ordered[i - 1].end_time).total_seconds() * 1000
        for i in range(1, len(ordered))
    ]

    return RecoveryMetrics(
        time_to_first_success_ms=time_to_first_success,
        average_phase_time_ms=_mean(s.duration_ms for s in steps),
        error_density=result.total_errors / len(steps) if steps else 0.0,
        recovery_efficiency=efficiency,
        resource_utilization=resource_utilization,
        success_rate=prior_success_rate,
        mttr_ms=_mean(op.duration_ms for op in history if op.success),
        mtbf_ms=_mean(gaps),
    )


def derive_insights(result: RecoveryResult, context: RecoveryContext) -> List[RecoveryInsight]:
    """Insights for one operation from fixed thresholds."""
    insights: List[RecoveryInsight] = []
    seconds = result.execution_time_ms / 1000

    if result.success:
        if result.health_improvement > InsightThresholds.HIGH_IMPROVEMENT:
            insights.append(RecoveryInsight(
                insight_type=InsightType.SUCCESS_FACTOR,
                severity=InsightSeverity.INFO,
                title="High Health Improvement",
                description=(
                    f"Recovery achieved {result.health_improvement}% health improvement, "
                    "which is above average"
                ),
                recommendation=(
                    f"This strategy ({result.strategy.value}) is highly effective "
                    f"for {result.module_id}"
                ),
                confidence=0.9,
                supporting_data={
                    "improvement": result.health_improvement,
                    "strategy": result.strategy.value,
                },
            ))
        if result.execution_time_ms < InsightThresholds.FAST_RECOVERY_MS:
            insights.append(RecoveryInsight(
                insight_type=InsightType.SUCCESS_FACTOR,
                severity=InsightSeverity.INFO,
                title="Fast Recovery Time",
                description=f"Recovery completed in {seconds:.1f}s, which is faster than average",
                recommendation="Continue using this approach for quick turnaround recoveries",
                confidence=0.8,
                supporting_data={"duration_ms": result.execution_time_ms},
            ))
    else:
        failed = [p.phase for p in result.phases if not p.success]
        if failed:
            insights.append(RecoveryInsight(
                insight_type=InsightType.FAILURE_CAUSE,
                severity=InsightSeverity.CRITICAL,
                title="Phase Failures Detected",
                description=f"{len(failed)} phases failed during recovery",
                recommendation="Review phase logs and consider alternative recovery strategy",
                confidence=0.9,
                supporting_data={"failed_phases": failed},
            ))

    if result.execution_time_ms > InsightThresholds.SLOW_RECOVERY_MS:
        insights.append(RecoveryInsight(
            insight_type=InsightType.OPTIMIZATION,
            severity=InsightSeverity.WARNING,
            title="Slow Recovery Performance",
            description=f"Recovery took {seconds:.1f}s, which is slower than optimal",
            recommendation="Consider optimizing recovery phases or using a more efficient strategy",
            confidence=0.7,
            supporting_data={"duration_ms": result.execution_time_ms},
        ))

    if result.strategy == RecoveryStrategy.RESET and result.success:
        insights.append(RecoveryInsight(
            insight_type=InsightType.RISK,
            severity=InsightSeverity.WARNING,
            title="Full Reset Required",
            description="Module required complete reset, indicating potential underlying issues",
            recommendation="Monitor module closely and consider preventive maintenance",
            confidence=0.8,
            supporting_data={"strategy": "reset", "max_attempts": context.max_attempts},
        ))
    return insights


def most_effective_strategy(ops: Sequence[RecoveryOperationRecord]) -> RecoveryStrategy:
    """Strategy with the highest success rate; ties keep the earlier strategy."""
    best = RecoveryStrategy.REPAIR
    best_rate = 0.0
    for strategy in RecoveryStrategy.ordered():
        rate = _success_rate([op for op in ops if op.strategy == strategy])
        if rate > best_rate:
            best, best_rate = strategy, rate
    return best


def recommended_strategy(profile: ModuleRecoveryProfile) -> str:
    if profile.success_rate > 0.9:
        return f"Continue with {profile.most_effective_strategy.value} strategy"
    if profile.success_rate < 0.5:
        return "Consider preventive maintenance or module redesign"
    if profile.average_duration_ms > 60000:
        return "Optimize recovery phases for better performance"
    return f"Use {profile.most_effective_strategy.value} strategy with monitoring"


def identify_risk_factors(ops: Sequence[RecoveryOperationRecord], now: datetime) -> List[str]:
    total = len(ops)
    if not total:
        return []
    factors: List[str] = []
    if sum(1 for op in ops if not op.success) > total * RiskThresholds.FAILURE_RATE:
        factors.append(RISK_HIGH_FAILURE_RATE)
    if sum(1 for op in ops if op.strategy == RecoveryStrategy.RESET) > total * RiskThresholds.RESET_RATE:
        factors.append(RISK_FREQUENT_RESETS)
    if sum(1 for op in ops if op.duration_ms > RiskThresholds.SLOW_OPERATION_MS) > total * RiskThresholds.SLOW_RATE:
        factors.append(RISK_SLOW_RECOVERY)
    if sum(1 for op in ops if op.health_improvement < RiskThresholds.LOW_IMPROVEMENT) > total * RiskThresholds.LOW_IMPROVEMENT_RATE:
        factors.append(RISK_POOR_IMPROVEMENT)

    cutoff = now - RiskThresholds.RECENT_WINDOW
    recent = [op for op in ops if op.start_time > cutoff]
    if len(recent) >= RiskThresholds.RECENT_MIN_OPERATIONS:
        if _success_rate(recent) < RiskThresholds.RECENT_SUCCESS_RATE:
            factors.append(RISK_DECLINING_SUCCESS)
    return factors


def build_profile(
    module_id: str, ops: Sequence[RecoveryOperationRecord], now: datetime,
) -> ModuleRecoveryProfile:
    """Recompute a module profile from every operation recorded for it."""
    profile = ModuleRecoveryProfile(
        module_id=module_id,
        total_operations=len(ops),
        success_rate=_success_rate(ops),
        average_duration_ms=_mean(op.duration_ms for op in ops),
        average_health_improvement=_mean(op.health_improvement for op in ops),
        most_effective_strategy=most_effective_strategy(ops),
        risk_factors=identify_risk_factors(ops, now),
        last_analyzed=now,
    )
    profile.recommended_strategy = recommended_strategy(profile)
    return profile


# ── RecoveryAnalytics ─────────────────────────────────────────────────

class RecoveryAnalytics:
    """Operation log, module profiles, system reports and predictions.

    One instance per workspace. Writers serialize on an ``asyncio.Lock``
    because profile recomputation reads the full log.
    """

    def __init__(
        self,
        store: Optional[DocumentStoreProtocol] = None,
        clock: Callable[[], datetime] = utc_now,
        resource_probe: Optional[Callable[[], float]] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._resource_probe = resource_probe
        self._operations: List[RecoveryOperationRecord] = []
        self._profiles: Dict[str, ModuleRecoveryProfile] = {}
        self._lock = asyncio.Lock()

    @property
    def operations(self) -> List[RecoveryOperationRecord]:
        return list(self._operations)

    def get_module_profile(self, module_id: str) -> Optional[ModuleRecoveryProfile]:
        return self._profiles.get(module_id)

    def module_profiles(self) -> List[ModuleRecoveryProfile]:
        return list(self._profiles.values())

    def _module_ops(self, module_id: str) -> List[RecoveryOperationRecord]:
        return [op for op in self._operations if op.module_id == module_id]

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def record_recovery_operation(
        self,
        operation_id: str,
        module_id: str,
        strategy: RecoveryStrategy,
        result: RecoveryResult,
        context: RecoveryContext,
    ) -> RecoveryOperationRecord:
        """Append an operation to the log and recompute the module profile."""
        strategy = RecoveryStrategy(strategy)
        async with self._lock:
            now = self._clock()
            history = self._module_ops(module_id)
            prior = self._profiles.get(module_id)
            utilization = (
                self._resource_probe() if self._resource_probe else NEUTRAL_RESOURCE_UTILIZATION
            )
            end_time = result.end_time or now
            start_time = result.start_time or end_time - timedelta(
                milliseconds=result.execution_time_ms
            )
            errors_resolved = result.errors_resolved
            record = RecoveryOperationRecord(
                operation_id=operation_id,
                module_id=module_id,
                strategy=strategy,
                start_time=start_time,
                end_time=end_time,
                duration_ms=result.execution_time_ms,
                success=result.success,
                initial_health_score=result.initial_health_score,
                final_health_score=result.final_health_score,
                health_improvement=result.health_improvement,
                phases_executed=len(result.phases),
                phases_successful=result.phases_successful,
                phases_failed=result.phases_failed,
                errors_resolved=errors_resolved,
                total_errors=result.total_errors,
                error_resolution_rate=(
                    errors_resolved / result.total_errors if result.total_errors else 0.0
                ),
                artifacts=list(result.artifacts),
                context=context.model_dump(),
                phases=list(result.phases),
                metrics=compute_metrics(
                    result, history, prior.success_rate if prior else 0.0, utilization,
                ),
                insights=derive_insights(result, context),
            )
            self._operations.append(record)
            profile = build_profile(module_id, history + [record], now)
            self._profiles[module_id] = profile

            self._persist(OPERATIONS_NAMESPACE, operation_id, record.to_dict())
            self._persist(PROFILES_NAMESPACE, module_id, profile.to_dict())

        logger.info(
            "Recovery operation recorded: %s (%s, %s, success=%s)",
            operation_id, module_id, strategy.value, result.success,
        )
        return record

    def recompute_profile(self, module_id: str) -> Optional[ModuleRecoveryProfile]:
        """Rebuild one profile from the log; None when the module has no operations."""
        ops = self._module_ops(module_id)
        if not ops:
            self._profiles.pop(module_id, None)
            return None
        profile = build_profile(module_id, ops, self._clock())
        self._profiles[module_id] = profile
        return profile

    def _persist(self, namespace: str, key: str, document: Dict[str, Any]) -> None:
        if self._store is None:
            return
        try:
            stored = self._store.store(namespace, key, document)
        except Exception as e:
            logger.warning("Analytics persistence failed for %s/%s: %s", namespace, key, e)
            return
        if not stored:
            logger.warning("Analytics document %s/%s was not persisted", namespace, key)

    def load(self) -> int:
        """Reload the operation log from the store and rebuild every profile.

        Returns:
            Number of operations loaded
        """
        if self._store is None:
            return 0
        records: List[RecoveryOperationRecord] = []
        for document in self._store.retrieve_all(OPERATIONS_NAMESPACE):
            try:
                records.append(RecoveryOperationRecord.from_dict(document))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable operation document: %s", e)
        records.sort(key=lambda op: op.start_time)
        self._operations = records
        self._profiles = {}
        for module_id in OrderedDict.fromkeys(op.module_id for op in records):
            self.recompute_profile(module_id)
        logger.info("Loaded %d recovery operations for %d modules", len(records), len(self._profiles))
        return len(records)

    # ------------------------------------------------------------------
    # System report
    # ------------------------------------------------------------------

    async def generate_system_report(self, timeframe: Timeframe) -> SystemRecoveryReport:
        async with self._lock:
            ops = [op for op in self._operations if timeframe.contains(op.start_time)]
            profiles = list(self._profiles.values())

        now = self._clock()
        report = SystemRecoveryReport(
            report_id=f"recovery-report-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}",
            generated_at=now,
            timeframe=timeframe,
            summary=ReportSummary(
                total_operations=len(ops),
                successful_operations=sum(1 for op in ops if op.success),
                failed_operations=sum(1 for op in ops if not op.success),
                average_duration_ms=_mean(op.duration_ms for op in ops),
                total_health_improvement=sum(op.health_improvement for op in ops),
                modules_recovered=len({op.module_id for op in ops if op.success}),
            ),
            module_profiles=profiles,
            trends=self._trends(ops),
            insights=self._system_insights(ops),
            recommendations=self._system_recommendations(ops, profiles),
            performance_metrics=self._performance_metrics(ops),
        )
        self._persist(REPORTS_NAMESPACE, report.report_id, report.to_dict())
        logger.info("System recovery report generated: %s (%d operations)", report.report_id, len(ops))
        return report

    @staticmethod
    def _trends(ops: Sequence[RecoveryOperationRecord]) -> List[RecoveryTrend]:
        trends: List[RecoveryTrend] = []
        for module_id in KNOWN_MODULES:
            buckets: Dict[str, List[RecoveryOperationRecord]] = OrderedDict()
            for op in ops:
                if op.module_id == module_id:
                    buckets.setdefault(op.start_time.date().isoformat(), []).append(op)
            if not buckets:
                continue
            trends.append(RecoveryTrend(
                module_id=module_id,
                points=[
                    TrendPoint(
                        date=day,
                        success_rate=_success_rate(day_ops),
                        average_duration_ms=_mean(op.duration_ms for op in day_ops),
                        health_improvement=_mean(op.health_improvement for op in day_ops),
                        operation_count=len(day_ops),
                    )
                    for day, day_ops in buckets.items()
                ],
            ))
        return trends

    @staticmethod
    def _system_insights(ops: Sequence[RecoveryOperationRecord]) -> List[RecoveryInsight]:
        if not ops:
            return []
        insights: List[RecoveryInsight] = []
        overall = _success_rate(ops)
        if overall < InsightThresholds.SYSTEM_SUCCESS_RATE:
            insights.append(RecoveryInsight(
                insight_type=InsightType.TREND,
                severity=InsightSeverity.WARNING,
                title="Low System Recovery Success Rate",
                description=(
                    f"Overall recovery success rate is {overall * 100:.1f}%, "
                    "below the recommended 70%"
                ),
                recommendation="Review common failure patterns and improve recovery strategies",
                confidence=0.9,
                supporting_data={"success_rate": overall, "total_operations": len(ops)},
            ))

        best: Optional[RecoveryStrategy] = None
        best_rate = 0.0
        best_total = 0
        for strategy in RecoveryStrategy.ordered():
            strategy_ops = [op for op in ops if op.strategy == strategy]
            rate = _success_rate(strategy_ops)
            if rate > best_rate:
                best, best_rate, best_total = strategy, rate, len(strategy_ops)
        if best is not None and best_total > 0:
            insights.append(RecoveryInsight(
                insight_type=InsightType.SUCCESS_FACTOR,
                severity=InsightSeverity.INFO,
                title="Most Effective Recovery Strategy",
                description=(
                    f"{best.value} strategy has the highest success rate "
                    f"at {best_rate * 100:.1f}%"
                ),
                recommendation=f"Prioritize {best.value} strategy when applicable",
                confidence=0.8,
                supporting_data={"strategy": best.value, "rate": best_rate, "total": best_total},
            ))
        return insights

    @staticmethod
    def _system_recommendations(
        ops: Sequence[RecoveryOperationRecord],
        profiles: Sequence[ModuleRecoveryProfile],
    ) -> List[str]:
        recommendations: List[str] = []
        high_risk = [p.module_id for p in profiles if len(p.risk_factors) > ReportThresholds.HIGH_RISK_FACTORS]
        if high_risk:
            recommendations.append(
                f"Focus on {len(high_risk)} high-risk modules: {', '.join(high_risk)}"
            )
        slow = [p.module_id for p in profiles if p.average_duration_ms > ReportThresholds.SLOW_MODULE_MS]
        if slow:
            recommendations.append(
                f"Optimize recovery performance for slow modules: {', '.join(slow)}"
            )
        unreliable = [
            p.module_id for p in profiles
            if p.success_rate < ReportThresholds.UNRELIABLE_SUCCESS_RATE
        ]
        if unreliable:
            recommendations.append(
                f"Implement preventive measures for unreliable modules: {', '.join(unreliable)}"
            )
        resets: Dict[str, int] = OrderedDict()
        for op in ops:
            if op.strategy == RecoveryStrategy.RESET and op.success:
                resets[op.module_id] = resets.get(op.module_id, 0) + 1
        frequent = [m for m, count in resets.items() if count >= ReportThresholds.FREQUENT_RESETS]
        if frequent:
            recommendations.append(
                "Consider architectural review for modules requiring frequent resets: "
                + ", ".join(frequent)
            )
        return recommendations

    @staticmethod
    def _performance_metrics(ops: Sequence[RecoveryOperationRecord]) -> Dict[str, Dict[str, Any]]:
        if not ops:
            return {
                "fastest_recovery": {"module_id": "", "duration_ms": 0, "strategy": "repair"},
                "slowest_recovery": {"module_id": "", "duration_ms": 0, "strategy": "repair"},
                "most_improved": {"module_id": "", "improvement": 0, "strategy": "repair"},
                "least_reliable": {"module_id": "", "success_rate": 0.0},
                "most_reliable": {"module_id": "", "success_rate": 0.0},
            }

        # Linear scans: the first element wins ties.
        fastest = slowest = most_improved = ops[0]
        for op in ops[1:]:
            if op.success and op.duration_ms < fastest.duration_ms:
                fastest = op
            if op.duration_ms > slowest.duration_ms:
                slowest = op
            if op.health_improvement > most_improved.health_improvement:
                most_improved = op

        per_module: Dict[str, List[RecoveryOperationRecord]] = OrderedDict()
        for op in ops:
            per_module.setdefault(op.module_id, []).append(op)
        rates = [(m, _success_rate(m_ops)) for m, m_ops in per_module.items()]
        least = most = rates[0]
        for entry in rates[1:]:
            if entry[1] < least[1]:
                least = entry
            if entry[1] > most[1]:
                most = entry

        return {
            "fastest_recovery": {
                "module_id": fastest.module_id,
                "duration_ms": fastest.duration_ms,
                "strategy": fastest.strategy.value,
            },
            "slowest_recovery": {
                "module_id": slowest.module_id,
                "duration_ms": slowest.duration_ms,
                "strategy": slowest.strategy.value,
            },
            "most_improved": {
                "module_id": most_improved.module_id,
                "improvement": most_improved.health_improvement,
                "strategy": most_improved.strategy.value,
            },
            "least_reliable": {"module_id": least[0], "success_rate": least[1]},
            "most_reliable": {"module_id": most[0], "success_rate": most[1]},
        }

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict_recovery_outcome(
        self, module_id: str, strategy: RecoveryStrategy,
    ) -> RecoveryPrediction:
        """Predict a recovery from the history of the (module, strategy) pair.

        Without history the prediction falls back to fixed defaults with
        zero confidence.
        """
        strategy = RecoveryStrategy(strategy)
        module_ops = self._module_ops(module_id)
        pair_ops = [op for op in module_ops if op.strategy == strategy]

        success_rate, duration, improvement = self._pair_estimates(pair_ops)
        alternatives = []
        for alt in RecoveryStrategy.ordered():
            if alt == strategy:
                continue
            alt_rate, alt_duration, _ = self._pair_estimates(
                [op for op in module_ops if op.strategy == alt]
            )
            alternatives.append(StrategyAlternative(
                strategy=alt,
                success_rate=alt_rate,
                duration_ms=alt_duration,
                pros=list(STRATEGY_PROS[alt]),
                cons=list(STRATEGY_CONS[alt]),
            ))

        profile = self._profiles.get(module_id)
        return RecoveryPrediction(
            module_id=module_id,
            strategy=strategy,
            predicted_success_rate=success_rate,
            predicted_duration_ms=duration,
            predicted_health_improvement=improvement,
            confidence=min(len(pair_ops) / PredictionDefaults.FULL_CONFIDENCE_OPERATIONS, 1.0),
            risk_factors=list(profile.risk_factors) if profile else [],
            alternatives=alternatives,
        )

    @staticmethod
    def _pair_estimates(ops: Sequence[RecoveryOperationRecord]) -> tuple:
        if not ops:
            return (
                PredictionDefaults.SUCCESS_RATE,
                float(PredictionDefaults.DURATION_MS),
                float(PredictionDefaults.HEALTH_IMPROVEMENT),
            )
        succeeded = [op for op in ops if op.success]
        return (
            _success_rate(ops),
            _mean(op.duration_ms for op in ops),
            _mean(op.health_improvement for op in succeeded)
            if succeeded else float(PredictionDefaults.HEALTH_IMPROVEMENT),
        )

    # ------------------------------------------------------------------
    # Statistics and export
    # ------------------------------------------------------------------

    def get_system_stats(self) -> Dict[str, Any]:
        ops = self._operations
        last = max((op.end_time for op in ops), default=None)
        return {
            "total_operations": len(ops),
            "successful_operations": sum(1 for op in ops if op.success),
            "overall_success_rate": _success_rate(ops),
            "average_duration_ms": _mean(op.duration_ms for op in ops),
            "modules_tracked": len(self._profiles),
            "last_operation_time": last.isoformat() if last else None,
        }

    def export_data(self, export_format: str = "json") -> str:
        """Serialize the full log and all profiles as one JSON document.

        The document is also written to the store when one is configured.

        Raises:
            ValueError: For any format other than ``json``
        """
        if export_format.strip().lower() != "json":
            raise ValueError(f"Unsupported export format: {export_format}")
        now = self._clock()
        document = {
            "operations": [op.to_dict() for op in self._operations],
            "profiles": [p.to_dict() for p in self._profiles.values()],
            "export_timestamp": now.isoformat(),
        }
        self._persist(
            EXPORTS_NAMESPACE,
            f"recovery-analytics-export-{now.strftime('%Y%m%dT%H%M%S%fZ')}",
            document,
        )
        return json.dumps(document, indent=2)
