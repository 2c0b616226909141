"""Analytics Domain Entities.

``RecoveryOperationRecord`` and ``ModuleRecoveryProfile`` are persisted as
one JSON document each, so their ``from_dict(to_dict())`` must reproduce
an equal structure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from wsrecovery.domains.module_recovery.entities import RecoveryStepResult
from wsrecovery.domains.shared.kernel import RecoveryStrategy

from .value_objects import InsightSeverity, InsightType, Timeframe


def _iso(value: datetime) -> str:
    return value.isoformat()


@dataclass(frozen=True)
class RecoveryMetrics:
    """Derived figures for one recorded operation.

    Attributes:
        time_to_first_success_ms: Elapsed time up to the end of the first
            successful step, or the whole run when none succeeded
        average_phase_time_ms: Mean step duration
        error_density: Errors per step
        recovery_efficiency: Health improvement per minute
        resource_utilization: Probe value in [0, 1]
        success_rate: Module success rate before this operation
        mttr_ms: Mean duration of earlier successful operations
        mtbf_ms: Mean gap between earlier operations of the module
    """
    time_to_first_success_ms: float = 0.0
    average_phase_time_ms: float = 0.0
    error_density: float = 0.0
    recovery_efficiency: float = 0.0
    resource_utilization: float = 0.0
    success_rate: float = 0.0
    mttr_ms: float = 0.0
    mtbf_ms: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "time_to_first_success_ms": self.time_to_first_success_ms,
            "average_phase_time_ms": self.average_phase_time_ms,
            "error_density": self.error_density,
            "recovery_efficiency": self.recovery_efficiency,
            "resource_utilization": self.resource_utilization,
            "success_rate": self.success_rate,
            "mttr_ms": self.mttr_ms,
            "mtbf_ms": self.mtbf_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecoveryMetrics:
        return cls(**{k: float(data.get(k, 0.0)) for k in cls().to_dict()})


@dataclass(frozen=True)
class RecoveryInsight:
    insight_type: InsightType
    severity: InsightSeverity
    title: str
    description: str
    recommendation: str
    confidence: float
    supporting_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.insight_type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation,
            "confidence": self.confidence,
            "supporting_data": dict(self.supporting_data),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecoveryInsight:
        return cls(
            insight_type=InsightType(data["type"]),
            severity=InsightSeverity(data["severity"]),
            title=data["title"],
            description=data["description"],
            recommendation=data["recommendation"],
            confidence=float(data["confidence"]),
            supporting_data=dict(data.get("supporting_data", {})),
        )


@dataclass
class RecoveryOperationRecord:
    """One recorded recovery operation in the analytics log."""
    operation_id: str
    module_id: str
    strategy: RecoveryStrategy
    start_time: datetime
    end_time: datetime
    duration_ms: int
    success: bool
    initial_health_score: int
    final_health_score: int
    health_improvement: int
    phases_executed: int
    phases_successful: int
    phases_failed: int
    errors_resolved: int
    total_errors: int
    error_resolution_rate: float
    artifacts: List[str] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    phases: List[RecoveryStepResult] = field(default_factory=list)
    metrics: RecoveryMetrics = field(default_factory=RecoveryMetrics)
    insights: List[RecoveryInsight] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "module_id": self.module_id,
            "strategy": self.strategy.value,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_ms": self.duration_ms,
            "success": self.success,
            "initial_health_score": self.initial_health_score,
            "final_health_score": self.final_health_score,
            "health_improvement": self.health_improvement,
            "phases_executed": self.phases_executed,
            "phases_successful": self.phases_successful,
            "phases_failed": self.phases_failed,
            "errors_resolved": self.errors_resolved,
            "total_errors": self.total_errors,
            "error_resolution_rate": self.error_resolution_rate,
            "artifacts": list(self.artifacts),
            "context": dict(self.context),
            "phases": [p.to_dict() for p in self.phases],
            "metrics": self.metrics.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecoveryOperationRecord:
        return cls(
            operation_id=data["operation_id"],
            module_id=data["module_id"],
            strategy=RecoveryStrategy(data["strategy"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            duration_ms=int(data["duration_ms"]),
            success=bool(data["success"]),
            initial_health_score=int(data["initial_health_score"]),
            final_health_score=int(data["final_health_score"]),
            health_improvement=int(data["health_improvement"]),
            phases_executed=int(data["phases_executed"]),
            phases_successful=int(data["phases_successful"]),
            phases_failed=int(data["phases_failed"]),
            errors_resolved=int(data["errors_resolved"]),
            total_errors=int(data["total_errors"]),
            error_resolution_rate=float(data["error_resolution_rate"]),
            artifacts=list(data.get("artifacts", [])),
            context=dict(data.get("context", {})),
            phases=[RecoveryStepResult.from_dict(p) for p in data.get("phases", [])],
            metrics=RecoveryMetrics.from_dict(data.get("metrics", {})),
            insights=[RecoveryInsight.from_dict(i) for i in data.get("insights", [])],
        )


@dataclass
class ModuleRecoveryProfile:
    """Historical performance of one module, recomputed from the full log."""
    module_id: str
    total_operations: int = 0
    success_rate: float = 0.0
    average_duration_ms: float = 0.0
    average_health_improvement: float = 0.0
    most_effective_strategy: RecoveryStrategy = RecoveryStrategy.REPAIR
    recommended_strategy: str = ""
    risk_factors: List[str] = field(default_factory=list)
    last_analyzed: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "total_operations": self.total_operations,
            "success_rate": self.success_rate,
            "average_duration_ms": self.average_duration_ms,
            "average_health_improvement": self.average_health_improvement,
            "most_effective_strategy": self.most_effective_strategy.value,
            "recommended_strategy": self.recommended_strategy,
            "risk_factors": list(self.risk_factors),
            "last_analyzed": self.last_analyzed.isoformat() if self.last_analyzed else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ModuleRecoveryProfile:
        last = data.get("last_analyzed")
        return cls(
            module_id=data["module_id"],
            total_operations=int(data.get("total_operations", 0)),
            success_rate=float(data.get("success_rate", 0.0)),
            average_duration_ms=float(data.get("average_duration_ms", 0.0)),
            average_health_improvement=float(data.get("average_health_improvement", 0.0)),
            most_effective_strategy=RecoveryStrategy(
                data.get("most_effective_strategy", RecoveryStrategy.REPAIR.value)
            ),
            recommended_strategy=data.get("recommended_strategy", ""),
            risk_factors=list(data.get("risk_factors", [])),
            last_analyzed=datetime.fromisoformat(last) if last else None,
        )


@dataclass(frozen=True)
class StrategyAlternative:
    strategy: RecoveryStrategy
    success_rate: float
    duration_ms: float
    pros: List[str]
    cons: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "success_rate": self.success_rate,
            "duration_ms": self.duration_ms,
            "pros": list(self.pros),
            "cons": list(self.cons),
        }


@dataclass(frozen=True)
class RecoveryPrediction:
    module_id: str
    strategy: RecoveryStrategy
    predicted_success_rate: float
    predicted_duration_ms: float
    predicted_health_improvement: float
    confidence: float
    risk_factors: List[str] = field(default_factory=list)
    alternatives: List[StrategyAlternative] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "strategy": self.strategy.value,
            "predicted_success_rate": self.predicted_success_rate,
            "predicted_duration_ms": self.predicted_duration_ms,
            "predicted_health_improvement": self.predicted_health_improvement,
            "confidence": self.confidence,
            "risk_factors": list(self.risk_factors),
            "alternatives": [a.to_dict() for a in self.alternatives],
        }


@dataclass(frozen=True)
class TrendPoint:
    """One daily bucket of a module trend."""
    date: str
    success_rate: float
    average_duration_ms: float
    health_improvement: float
    operation_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.date,
            "success_rate": self.success_rate,
            "average_duration_ms": self.average_duration_ms,
            "health_improvement": self.health_improvement,
            "operation_count": self.operation_count,
        }


@dataclass(frozen=True)
class RecoveryTrend:
    module_id: str
    points: List[TrendPoint]
    granularity: str = "daily"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "timeframe": self.granularity,
            "data": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class ReportSummary:
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    average_duration_ms: float = 0.0
    total_health_improvement: int = 0
    modules_recovered: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "average_duration_ms": self.average_duration_ms,
            "total_health_improvement": self.total_health_improvement,
            "modules_recovered": self.modules_recovered,
        }


@dataclass
class SystemRecoveryReport:
    report_id: str
    generated_at: datetime
    timeframe: Timeframe
    summary: ReportSummary
    module_profiles: List[ModuleRecoveryProfile] = field(default_factory=list)
    trends: List[RecoveryTrend] = field(default_factory=list)
    insights: List[RecoveryInsight] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    performance_metrics: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "generated_at": self.generated_at.isoformat(),
            "timeframe": self.timeframe.to_dict(),
            "summary": self.summary.to_dict(),
            "module_profiles": [p.to_dict() for p in self.module_profiles],
            "trends": [t.to_dict() for t in self.trends],
            "insights": [i.to_dict() for i in self.insights],
            "recommendations": list(self.recommendations),
            "performance_metrics": {k: dict(v) for k, v in self.performance_metrics.items()},
        }
