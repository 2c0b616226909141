"""Health Domain Aggregate Root.

**WorkspaceHealth** owns the ``module_id -> ModuleState`` mapping for one
``analyze_workspace`` call and derives everything workspace-wide from it:
the weighted overall score, the module summary, recommendations and
critical issues.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from wsrecovery.domains.shared.kernel import KNOWN_MODULES, utc_now

from .entities import CriticalIssue, ModuleState, WorkspaceRecommendation
from .value_objects import (
    DependencyHealth,
    HealthStatus,
    HealthThresholds,
    RecoveryPriority,
    WorkspaceHealthStatus,
)


@dataclass
class WorkspaceHealth:
    """Aggregate root for one workspace health analysis.

    Invariants:
        - ``overall_health_score`` is the category-weighted mean of module
          scores, rounded half away from zero; 0 for an empty workspace
        - ``module_states`` iterates in known-module order

    Lifecycle:
        1. ``create()`` from the analyzer's module states
        2. read-only projections (``to_dict()``, ``module_summary()``)
    """
    workspace_path: str
    module_states: Dict[str, ModuleState]
    recommendations: List[WorkspaceRecommendation] = field(default_factory=list)
    critical_issues: List[CriticalIssue] = field(default_factory=list)
    analyzed_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        workspace_path: str,
        module_states: Dict[str, ModuleState],
        include_recommendations: bool = True,
    ) -> WorkspaceHealth:
        ordered = {
            m: module_states[m]
            for m in sorted(module_states, key=_known_order)
        }
        health = cls(workspace_path=str(workspace_path), module_states=ordered)
        health.critical_issues = health._derive_critical_issues()
        if include_recommendations:
            health.recommendations = health._derive_recommendations()
        return health

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def overall_health_score(self) -> int:
        if not self.module_states:
            return 0
        total = 0
        weight_sum = 0
        for state in self.module_states.values():
            weight = state.category.weight
            total += state.health_score * weight
            weight_sum += weight
        return int(total / weight_sum + 0.5)

    @property
    def health_status(self) -> WorkspaceHealthStatus:
        return WorkspaceHealthStatus.from_score(self.overall_health_score)

    @property
    def modules_needing_recovery(self) -> List[str]:
        return [
            m for m, s in self.module_states.items()
            if s.recovery_state.recovery_needed
        ]

    def module_summary(self) -> Dict[str, Any]:
        by_status = {status.value: 0 for status in HealthStatus}
        high: List[str] = []
        medium: List[str] = []
        low: List[str] = []
        estimated = 0
        longest = 0
        for module_id, state in self.module_states.items():
            by_status[state.status.value] += 1
            priority = state.recovery_state.recovery_priority
            if priority in (RecoveryPriority.CRITICAL, RecoveryPriority.HIGH):
                high.append(module_id)
            elif priority == RecoveryPriority.MEDIUM:
                medium.append(module_id)
            else:
                low.append(module_id)
            if state.recovery_state.recovery_needed:
                duration = state.recovery_state.estimated_recovery_time_ms
                estimated += duration
                longest = max(longest, duration)
        return {
            "total_modules": len(self.module_states),
            "by_status": by_status,
            "high_priority_modules": high,
            "medium_priority_modules": medium,
            "low_priority_modules": low,
            "estimated_recovery_time_ms": estimated,
            "parallel_recovery_time_ms": longest,
        }

    def _derive_critical_issues(self) -> List[CriticalIssue]:
        issues: List[CriticalIssue] = []
        for module_id, state in self.module_states.items():
            for error in state.critical_errors:
                issues.append(CriticalIssue.from_module_issue(module_id, error))
        return issues

    def _derive_recommendations(self) -> List[WorkspaceRecommendation]:
        recs: List[WorkspaceRecommendation] = []
        for module_id, state in self.module_states.items():
            if state.health_score < HealthThresholds.CRITICAL_RECOVERY:
                recs.append(WorkspaceRecommendation(
                    recommendation_id=f"critical-recovery-{module_id}",
                    module_id=module_id,
                    priority=RecoveryPriority.CRITICAL,
                    action=f"Run {state.recovery_state.recovery_strategy.value} recovery",
                    description=(
                        f"Module {module_id} requires critical recovery "
                        f"(health score {state.health_score})"
                    ),
                ))
            if not state.package_json_valid:
                recs.append(WorkspaceRecommendation(
                    recommendation_id=f"fix-package-json-{module_id}",
                    module_id=module_id,
                    priority=RecoveryPriority.HIGH,
                    action="Fix package.json",
                    description=f"Module {module_id} has an invalid or missing package.json",
                ))
            if state.dependency_health != DependencyHealth.RESOLVED:
                recs.append(WorkspaceRecommendation(
                    recommendation_id=f"fix-dependencies-{module_id}",
                    module_id=module_id,
                    priority=RecoveryPriority.HIGH,
                    action="Resolve dependencies",
                    description=(
                        f"Module {module_id} has {state.dependency_health.value} "
                        f"dependencies"
                    ),
                ))
        return recs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workspace_path": self.workspace_path,
            "overall_health_score": self.overall_health_score,
            "health_status": self.health_status.value,
            "analyzed_at": self.analyzed_at.isoformat(),
            "module_summary": self.module_summary(),
            "module_states": {
                m: s.to_dict() for m, s in self.module_states.items()
            },
            "recommendations": [r.to_dict() for r in self.recommendations],
            "critical_issues": [i.to_dict() for i in self.critical_issues],
        }


def _known_order(module_id: str) -> int:
    try:
        return KNOWN_MODULES.index(module_id)
    except ValueError:
        return len(KNOWN_MODULES)
