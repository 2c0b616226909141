"""Analytics Bounded Context.

Operation log of recorded recoveries, per-module profiles recomputed from
that log, system reports, predictions and export.
"""
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
from .services import (
    EXPORTS_NAMESPACE,
    OPERATIONS_NAMESPACE,
    PROFILES_NAMESPACE,
    REPORTS_NAMESPACE,
    DocumentStoreProtocol,
    RecoveryAnalytics,
    build_profile,
    compute_metrics,
    derive_insights,
    identify_risk_factors,
    most_effective_strategy,
    recommended_strategy,
)

__all__ = [
    # Value objects
    "NEUTRAL_RESOURCE_UTILIZATION",
    "RISK_DECLINING_SUCCESS",
    "RISK_FREQUENT_RESETS",
    "RISK_HIGH_FAILURE_RATE",
    "RISK_POOR_IMPROVEMENT",
    "RISK_SLOW_RECOVERY",
    "STRATEGY_CONS",
    "STRATEGY_PROS",
    "InsightSeverity",
    "InsightThresholds",
    "InsightType",
    "PredictionDefaults",
    "ReportThresholds",
    "RiskThresholds",
    "Timeframe",
    # Entities
    "ModuleRecoveryProfile",
    "RecoveryInsight",
    "RecoveryMetrics",
    "RecoveryOperationRecord",
    "RecoveryPrediction",
    "RecoveryTrend",
    "ReportSummary",
    "StrategyAlternative",
    "SystemRecoveryReport",
    "TrendPoint",
    # Services
    "EXPORTS_NAMESPACE",
    "OPERATIONS_NAMESPACE",
    "PROFILES_NAMESPACE",
    "REPORTS_NAMESPACE",
    "DocumentStoreProtocol",
    "RecoveryAnalytics",
    "build_profile",
    "compute_metrics",
    "derive_insights",
    "identify_risk_factors",
    "most_effective_strategy",
    "recommended_strategy",
]
