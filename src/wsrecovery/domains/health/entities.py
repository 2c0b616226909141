"""Health Domain Entities.

``ModuleState`` is an immutable snapshot produced by one assessment.
Every ``analyze_module`` call builds a new one from scratch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from wsrecovery.domains.shared.kernel import RecoveryStrategy, utc_now

from .value_objects import (
    CriticalIssueCategory,
    DependencyHealth,
    ErrorImpact,
    ErrorType,
    HealthStatus,
    IssueSeverity,
    ModuleCategory,
    RecoveryPriority,
)


# Error ids with these prefixes mean the module tree itself is unusable.
STRUCTURAL_ERROR_PREFIXES: Tuple[str, ...] = (
    "missing-module-",
    "empty-module-",
    "unreadable-module-",
)


@dataclass(frozen=True)
class ModuleIssue:
    """One finding of a health check, identified by a stable ``error_id``."""
    error_id: str
    error_type: ErrorType
    message: str
    impact: ErrorImpact
    severity: IssueSeverity
    file_path: Optional[str] = None

    @property
    def is_structural(self) -> bool:
        return self.error_id.startswith(STRUCTURAL_ERROR_PREFIXES)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "error_id": self.error_id,
            "error_type": self.error_type.value,
            "message": self.message,
            "impact": self.impact.value,
            "severity": self.severity.value,
        }
        if self.file_path:
            d["file_path"] = self.file_path
        return d


@dataclass(frozen=True)
class RecoveryState:
    recovery_needed: bool
    recovery_priority: RecoveryPriority
    recovery_strategy: RecoveryStrategy
    estimated_recovery_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recovery_needed": self.recovery_needed,
            "recovery_priority": self.recovery_priority.value,
            "recovery_strategy": self.recovery_strategy.value,
            "estimated_recovery_time_ms": self.estimated_recovery_time_ms,
        }


@dataclass(frozen=True)
class ModuleState:
    """Health snapshot of one workspace module.

    Attributes:
        module_id: Known module identifier
        category: Architectural layer used for weighting and ordering
        health_score: 0-100, lower is worse
        status: Band derived from the score and blocking errors
        critical_errors: Issues that block build or functionality
        non_critical_errors: Issues that degrade the module
        warnings: Convention violations
        build_warnings: Missing or unusual build tooling
        dependencies: Declared dependency names across all manifest sections
        recovery_state: Priority and strategy derived from the score
        last_assessment: When the snapshot was taken
    """
    module_id: str
    category: ModuleCategory
    health_score: int
    status: HealthStatus
    package_json_valid: bool
    tsconfig_valid: bool
    build_config_valid: bool
    dependency_health: DependencyHealth
    recovery_state: RecoveryState
    critical_errors: Tuple[ModuleIssue, ...] = ()
    non_critical_errors: Tuple[ModuleIssue, ...] = ()
    warnings: Tuple[ModuleIssue, ...] = ()
    build_warnings: Tuple[ModuleIssue, ...] = ()
    dependencies: Tuple[str, ...] = ()
    last_assessment: datetime = field(default_factory=utc_now)

    @property
    def all_issues(self) -> List[ModuleIssue]:
        return [
            *self.critical_errors,
            *self.non_critical_errors,
            *self.warnings,
            *self.build_warnings,
        ]

    @property
    def has_blocking_errors(self) -> bool:
        return any(e.impact.is_blocking for e in self.critical_errors)

    @property
    def has_structural_errors(self) -> bool:
        return any(e.is_structural for e in self.critical_errors)

    @property
    def error_count(self) -> int:
        return len(self.critical_errors) + len(self.non_critical_errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "category": self.category.value,
            "health_score": self.health_score,
            "status": self.status.value,
            "package_json_valid": self.package_json_valid,
            "tsconfig_valid": self.tsconfig_valid,
            "build_config_valid": self.build_config_valid,
            "dependency_health": self.dependency_health.value,
            "critical_errors": [e.to_dict() for e in self.critical_errors],
            "non_critical_errors": [e.to_dict() for e in self.non_critical_errors],
            "warnings": [e.to_dict() for e in self.warnings],
            "build_warnings": [e.to_dict() for e in self.build_warnings],
            "dependencies": list(self.dependencies),
            "recovery_state": self.recovery_state.to_dict(),
            "last_assessment": self.last_assessment.isoformat(),
        }


@dataclass(frozen=True)
class WorkspaceRecommendation:
    recommendation_id: str
    module_id: str
    priority: RecoveryPriority
    action: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommendation_id": self.recommendation_id,
            "module_id": self.module_id,
            "priority": self.priority.value,
            "action": self.action,
            "description": self.description,
        }


@dataclass(frozen=True)
class CriticalIssue:
    """A module's critical error lifted to workspace level."""
    issue_id: str
    module_id: str
    category: CriticalIssueCategory
    description: str
    blocks_recovery: bool

    @classmethod
    def from_module_issue(cls, module_id: str, issue: ModuleIssue) -> CriticalIssue:
        return cls(
            issue_id=issue.error_id,
            module_id=module_id,
            category=CriticalIssueCategory.from_error_type(issue.error_type),
            description=issue.message,
            blocks_recovery=issue.impact.is_blocking,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issue_id": self.issue_id,
            "module_id": self.module_id,
            "category": self.category.value,
            "description": self.description,
            "blocks_recovery": self.blocks_recovery,
        }


@dataclass
class ConfigurationReport:
    """Advisory result of the workspace-level configuration check."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ModuleValidationResult:
    """Answer of the validation collaborator for one module."""
    module_id: str
    is_valid: bool
    health_score: int
    issues: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "is_valid": self.is_valid,
            "health_score": self.health_score,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
        }
