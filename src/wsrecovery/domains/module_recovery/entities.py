"""Module Recovery Domain Entities.

``RecoveryResult`` is the document persisted per recorded operation, so
``from_dict(to_dict())`` must reproduce an equal structure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from wsrecovery.domains.shared.kernel import RecoveryStrategy

from .value_objects import RecoveryOutcome


@dataclass
class RecoveryStepResult:
    """Outcome of one recovery step (a ``phase`` of the module recovery)."""
    phase: str
    success: bool
    health_improvement: int = 0
    errors_resolved: int = 0
    duration_ms: int = 0
    attempts: int = 1
    output: str = ""
    errors: List[str] = field(default_factory=list)
    artifacts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "success": self.success,
            "health_improvement": self.health_improvement,
            "errors_resolved": self.errors_resolved,
            "duration_ms": self.duration_ms,
            "attempts": self.attempts,
            "output": self.output,
            "errors": list(self.errors),
            "artifacts": list(self.artifacts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecoveryStepResult:
        return cls(
            phase=data["phase"],
            success=bool(data["success"]),
            health_improvement=int(data.get("health_improvement", 0)),
            errors_resolved=int(data.get("errors_resolved", 0)),
            duration_ms=int(data.get("duration_ms", 0)),
            attempts=int(data.get("attempts", 1)),
            output=data.get("output", ""),
            errors=list(data.get("errors", [])),
            artifacts=list(data.get("artifacts", [])),
        )


@dataclass
class RecoveryResult:
    """Outcome of recovering one module with one strategy.

    Attributes:
        module_id: The recovered module
        strategy: Strategy that was applied
        success: Final score reached the target and no step reported errors
        phases: Per-step results in execution order
        initial_health_score: Score before recovery
        final_health_score: Score after recovery
        health_improvement: ``final - initial``
        execution_time_ms: Wall-clock duration
        total_errors: Error messages collected across all steps
        artifacts: Files produced (logs, backups, scaffolded configs)
        start_time: When the recovery began
        end_time: When the recovery finished
    """
    module_id: str
    strategy: RecoveryStrategy
    success: bool
    phases: List[RecoveryStepResult] = field(default_factory=list)
    initial_health_score: int = 0
    final_health_score: int = 0
    health_improvement: int = 0
    execution_time_ms: int = 0
    total_errors: int = 0
    artifacts: List[str] = field(default_factory=list)
    outcome: RecoveryOutcome = RecoveryOutcome.FAILED
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def errors_resolved(self) -> int:
        return sum(p.errors_resolved for p in self.phases)

    @property
    def phases_successful(self) -> int:
        return sum(1 for p in self.phases if p.success)

    @property
    def phases_failed(self) -> int:
        return sum(1 for p in self.phases if not p.success)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "module_id": self.module_id,
            "strategy": self.strategy.value,
            "success": self.success,
            "phases": [p.to_dict() for p in self.phases],
            "initial_health_score": self.initial_health_score,
            "final_health_score": self.final_health_score,
            "health_improvement": self.health_improvement,
            "execution_time_ms": self.execution_time_ms,
            "total_errors": self.total_errors,
            "errors_resolved": self.errors_resolved,
            "artifacts": list(self.artifacts),
            "outcome": self.outcome.value,
        }
        if self.start_time is not None:
            d["start_time"] = self.start_time.isoformat()
        if self.end_time is not None:
            d["end_time"] = self.end_time.isoformat()
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecoveryResult:
        return cls(
            module_id=data["module_id"],
            strategy=RecoveryStrategy(data["strategy"]),
            success=bool(data["success"]),
            phases=[RecoveryStepResult.from_dict(p) for p in data.get("phases", [])],
            initial_health_score=int(data.get("initial_health_score", 0)),
            final_health_score=int(data.get("final_health_score", 0)),
            health_improvement=int(data.get("health_improvement", 0)),
            execution_time_ms=int(data.get("execution_time_ms", 0)),
            total_errors=int(data.get("total_errors", 0)),
            artifacts=list(data.get("artifacts", [])),
            outcome=RecoveryOutcome(data.get("outcome", RecoveryOutcome.FAILED.value)),
            error=data.get("error"),
            start_time=_parse_time(data.get("start_time")),
            end_time=_parse_time(data.get("end_time")),
        )


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
