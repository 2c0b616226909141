"""Health Bounded Context.

Per-module health scoring over manifest, type-config, build-config,
dependency and source-structure signals, aggregated into a weighted
workspace view with recommendations and critical issues.
"""
from .value_objects import (
    CriticalIssueCategory,
    DependencyHealth,
    ErrorImpact,
    ErrorType,
    HealthPenalties,
    HealthStatus,
    HealthThresholds,
    IssueSeverity,
    ModuleCategory,
    RecoveryPriority,
    WorkspaceHealthStatus,
)
from .entities import (
    ConfigurationReport,
    CriticalIssue,
    ModuleIssue,
    ModuleState,
    ModuleValidationResult,
    RecoveryState,
    WorkspaceRecommendation,
)
from .aggregates import WorkspaceHealth
from .services import (
    HealthAssessor,
    ModuleValidator,
    WorkspaceAnalyzer,
    build_recovery_state,
    failed_module_state,
    select_strategy,
)

__all__ = [
    # Value objects
    "CriticalIssueCategory",
    "DependencyHealth",
    "ErrorImpact",
    "ErrorType",
    "HealthPenalties",
    "HealthStatus",
    "HealthThresholds",
    "IssueSeverity",
    "ModuleCategory",
    "RecoveryPriority",
    "WorkspaceHealthStatus",
    # Entities
    "ConfigurationReport",
    "CriticalIssue",
    "ModuleIssue",
    "ModuleState",
    "ModuleValidationResult",
    "RecoveryState",
    "WorkspaceRecommendation",
    # Aggregates
    "WorkspaceHealth",
    # Services
    "HealthAssessor",
    "ModuleValidator",
    "WorkspaceAnalyzer",
    "build_recovery_state",
    "failed_module_state",
    "select_strategy",
]
