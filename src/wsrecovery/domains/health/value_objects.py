"""Health Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
Score bands, penalty weights and strategy thresholds live here so the
assessor and the aggregate agree on them.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Dict, Tuple

from wsrecovery.domains.shared.kernel import (
    CORE_MODULES,
    FOUNDATION_MODULES,
    RecoveryStrategy,
)


class ModuleCategory(str, enum.Enum):
    """Architectural layer of a module.

    Core modules weigh most in the workspace score, business modules least.
    """
    CORE = "core"
    FOUNDATION = "foundation"
    BUSINESS = "business"

    @classmethod
    def for_module(cls, module_id: str) -> ModuleCategory:
        if module_id in CORE_MODULES:
            return cls.CORE
        if module_id in FOUNDATION_MODULES:
            return cls.FOUNDATION
        return cls.BUSINESS

    @property
    def weight(self) -> int:
        return _CATEGORY_WEIGHTS[self]

    @property
    def rank(self) -> int:
        """Recovery order: core first, business last."""
        return _CATEGORY_RANKS[self]


_CATEGORY_WEIGHTS: Dict[ModuleCategory, int] = {
    ModuleCategory.CORE: 3,
    ModuleCategory.FOUNDATION: 2,
    ModuleCategory.BUSINESS: 1,
}

_CATEGORY_RANKS: Dict[ModuleCategory, int] = {
    ModuleCategory.CORE: 0,
    ModuleCategory.FOUNDATION: 1,
    ModuleCategory.BUSINESS: 2,
}


class HealthStatus(str, enum.Enum):
    """Health band of a single module.

    Values:
        HEALTHY: score >= 85
        DEGRADED: 60 <= score < 85
        CRITICAL: score < 60
        FAILED: score 0 with at least one blocking error
        UNKNOWN: the module could not be assessed
    """
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def from_score(cls, score: int, has_blocking_errors: bool = False) -> HealthStatus:
        if score == 0 and has_blocking_errors:
            return cls.FAILED
        if score >= HealthThresholds.HEALTHY:
            return cls.HEALTHY
        if score >= HealthThresholds.DEGRADED:
            return cls.DEGRADED
        return cls.CRITICAL


class WorkspaceHealthStatus(str, enum.Enum):
    """Coarser band used for the workspace-wide weighted score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"
    FAILED = "failed"

    @classmethod
    def from_score(cls, score: int) -> WorkspaceHealthStatus:
        if score >= 90:
            return cls.EXCELLENT
        if score >= 70:
            return cls.GOOD
        if score >= 50:
            return cls.FAIR
        if score >= 30:
            return cls.POOR
        if score >= 10:
            return cls.CRITICAL
        return cls.FAILED


class DependencyHealth(str, enum.Enum):
    RESOLVED = "resolved"
    MISSING = "missing"
    CONFLICTED = "conflicted"


class RecoveryPriority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: int) -> RecoveryPriority:
        if score < 20:
            return cls.CRITICAL
        if score < 40:
            return cls.HIGH
        if score < 70:
            return cls.MEDIUM
        return cls.LOW


class ErrorType(str, enum.Enum):
    DEPENDENCY_MISSING = "dependency_missing"
    DEPENDENCY_CONFLICT = "dependency_conflict"
    CONFIGURATION_INVALID = "configuration_invalid"
    SYNTAX_ERROR = "syntax_error"
    STRUCTURE_INVALID = "structure_invalid"
    FILESYSTEM_ERROR = "filesystem_error"
    BUILD_FAILURE = "build_failure"
    TEST_FAILURE = "test_failure"


class ErrorImpact(str, enum.Enum):
    BLOCKS_FUNCTIONALITY = "blocks_functionality"
    BLOCKS_BUILD = "blocks_build"
    DEGRADES = "degrades"
    COSMETIC = "cosmetic"

    @property
    def is_blocking(self) -> bool:
        return self in (ErrorImpact.BLOCKS_FUNCTIONALITY, ErrorImpact.BLOCKS_BUILD)


class IssueSeverity(str, enum.Enum):
    """Which list of ``ModuleState`` an issue lands in."""
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    BUILD_WARNING = "build_warning"


class CriticalIssueCategory(str, enum.Enum):
    BUILD_FAILURE = "build_failure"
    DEPENDENCY_MISSING = "dependency_missing"
    TEST_FAILURE = "test_failure"
    CONFIGURATION_ERROR = "configuration_error"

    @classmethod
    def from_error_type(cls, error_type: ErrorType) -> CriticalIssueCategory:
        if error_type == ErrorType.BUILD_FAILURE:
            return cls.BUILD_FAILURE
        if error_type in (ErrorType.DEPENDENCY_MISSING, ErrorType.DEPENDENCY_CONFLICT):
            return cls.DEPENDENCY_MISSING
        if error_type == ErrorType.TEST_FAILURE:
            return cls.TEST_FAILURE
        return cls.CONFIGURATION_ERROR


class HealthThresholds:
    """Score boundaries shared by status bands and strategy selection."""
    HEALTHY: ClassVar[int] = 85
    DEGRADED: ClassVar[int] = 60
    REPAIR: ClassVar[int] = 50
    RESET: ClassVar[int] = 25
    CRITICAL_RECOVERY: ClassVar[int] = 50


@dataclass(frozen=True)
class HealthPenalties:
    """Points removed from the starting score of 100 per recorded issue.

    Examples:
        >>> HealthPenalties().score(critical=1, warnings=2)
        65
    """
    critical: int = 25
    error: int = 10
    warning: int = 5
    build_warning: int = 5

    MAX_SCORE: ClassVar[int] = 100

    def score(
        self,
        critical: int = 0,
        errors: int = 0,
        warnings: int = 0,
        build_warnings: int = 0,
    ) -> int:
        raw = (
            self.MAX_SCORE
            - critical * self.critical
            - errors * self.error
            - warnings * self.warning
            - build_warnings * self.build_warning
        )
        return max(0, min(self.MAX_SCORE, raw))


# Estimated wall-clock cost of each strategy, in milliseconds.
STRATEGY_ESTIMATED_DURATION_MS: Dict[RecoveryStrategy, int] = {
    RecoveryStrategy.REPAIR: 120000,
    RecoveryStrategy.REBUILD: 600000,
    RecoveryStrategy.RESET: 300000,
}

BUILD_CONFIG_FILES: Tuple[str, ...] = (
    "tsup.config.ts",
    "rollup.config.js",
    "webpack.config.js",
    "vite.config.ts",
)

INDEX_CANDIDATES: Tuple[str, ...] = (
    "src/index.ts",
    "src/index.js",
    "index.ts",
    "index.js",
)

REQUIRED_MANIFEST_FIELDS: Tuple[str, ...] = ("name", "version")

DEPENDENCY_SECTIONS: Tuple[str, ...] = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
)

REQUIRED_ROOT_SCRIPTS: Tuple[str, ...] = ("build", "test", "lint", "type-check")

WORKSPACE_GLOB = "packages/*"
