"""Phase Execution Domain Aggregate Root.

**RecoverySession** is the root aggregate for one recovery run. It owns
the ordered recovery plan and the session-level progress figures, which
are always recomputed from the phases rather than adjusted in place.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from wsrecovery.domains.shared.errors import PhaseNotFoundError
from wsrecovery.domains.shared.kernel import RecoveryStrategy, utc_now

from .entities import RecoveryPhase, RecoveryTask
from .value_objects import PLAN_TEMPLATES, PhaseStatus, SessionStatus, TaskType


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


@dataclass
class RecoverySession:
    """Aggregate root for one recovery run.

    Invariants:
        - ``overall_progress == round(100 * completed_phases / total_phases)``
        - ``health_improvement`` is the sum of phase improvements
        - ``current_health_score == initial_health_score + health_improvement``
          (capped at 100)
        - the session is completed exactly when every phase is completed

    Lifecycle:
        1. ``create()`` / ``for_module()`` - build the plan
        2. ``start()`` - first phase execution begins
        3. ``update_progress()`` after every phase execution
        4. ``fail()`` / ``cancel()`` on abnormal termination

    Concurrency:
        Owned by exactly one PhaseExecutor; no cross-session mutation.
    """
    session_id: str
    recovery_plan: List[RecoveryPhase]
    initial_health_score: int = 0
    module_id: Optional[str] = None
    strategy: Optional[RecoveryStrategy] = None
    status: SessionStatus = SessionStatus.PENDING
    current_phase: Optional[str] = None
    overall_progress: int = 0
    health_improvement: int = 0
    current_health_score: int = 0
    completed_tasks: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None

    def __post_init__(self) -> None:
        seen = set()
        for phase in self.recovery_plan:
            if phase.phase_id in seen:
                raise ValueError(f"Duplicate phase id: {phase.phase_id}")
            seen.add(phase.phase_id)
        self.current_health_score = max(self.current_health_score, self.initial_health_score)

    @classmethod
    def create(
        cls,
        phases: List[RecoveryPhase],
        initial_health_score: int = 0,
        module_id: Optional[str] = None,
        strategy: Optional[RecoveryStrategy] = None,
    ) -> RecoverySession:
        return cls(
            session_id=f"session-{uuid.uuid4().hex[:12]}",
            recovery_plan=list(phases),
            initial_health_score=initial_health_score,
            current_health_score=initial_health_score,
            module_id=module_id,
            strategy=strategy,
        )

    @classmethod
    def for_module(
        cls,
        module_id: str,
        strategy: RecoveryStrategy,
        initial_health_score: int,
        target_configurations: Optional[List[str]] = None,
    ) -> RecoverySession:
        """Build a session whose plan follows the strategy's phase template.

        Each phase depends on the one before it; every task targets the
        module.
        """
        strategy = RecoveryStrategy(strategy)
        configurations = list(target_configurations or [
            f"packages/{module_id}/package.json",
            f"packages/{module_id}/tsconfig.json",
        ])
        phases: List[RecoveryPhase] = []
        previous: Optional[str] = None
        for order, template in enumerate(PLAN_TEMPLATES[strategy], start=1):
            phase_id = f"phase-{order}"
            tasks = [
                RecoveryTask(
                    task_id=f"{phase_id}-task-{i}",
                    task_name=f"{task_type.value.capitalize()} {module_id}",
                    task_type=task_type,
                    target_modules=[module_id],
                    target_configurations=configurations
                    if task_type == TaskType.CONFIGURATION else [],
                )
                for i, task_type in enumerate(template.task_types, start=1)
            ]
            phases.append(RecoveryPhase(
                phase_id=phase_id,
                phase_name=f"{template.name} ({strategy.value})",
                phase_type=template.phase_type,
                order=order,
                depends_on=[previous] if previous else [],
                tasks=tasks,
                estimated_duration_ms=template.estimated_duration_ms,
            ))
            previous = phase_id
        return cls.create(phases, initial_health_score, module_id, strategy)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_phase(self, phase_id: str) -> RecoveryPhase:
        """Return a phase by id.

        Raises:
            PhaseNotFoundError: If the plan has no such phase
        """
        for phase in self.recovery_plan:
            if phase.phase_id == phase_id:
                return phase
        raise PhaseNotFoundError(phase_id)

    def find_phase(self, phase_id: str) -> Optional[RecoveryPhase]:
        for phase in self.recovery_plan:
            if phase.phase_id == phase_id:
                return phase
        return None

    def phases_before(self, phase: RecoveryPhase) -> List[RecoveryPhase]:
        """Phases that come earlier in plan order."""
        return [p for p in self.recovery_plan if p.order < phase.order]

    @property
    def total_phases(self) -> int:
        return len(self.recovery_plan)

    @property
    def completed_phases(self) -> int:
        return sum(1 for p in self.recovery_plan if p.status == PhaseStatus.COMPLETED)

    @property
    def total_tasks(self) -> int:
        return sum(p.total_tasks for p in self.recovery_plan)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, now: Optional[datetime] = None) -> None:
        if self.start_time is None:
            self.start_time = now or utc_now()
        self.status = SessionStatus.EXECUTING
        self.end_time = None
        self.duration_ms = None

    def update_progress(self, now: Optional[datetime] = None) -> None:
        """Recompute every session figure from the phases."""
        total = self.total_phases
        completed = self.completed_phases
        self.overall_progress = _round_half_up(100 * completed / total) if total else 0
        self.health_improvement = sum(p.health_improvement for p in self.recovery_plan)
        self.current_health_score = min(100, self.initial_health_score + self.health_improvement)
        self.completed_tasks = sum(p.completed_tasks for p in self.recovery_plan)
        if total and completed == total:
            self.status = SessionStatus.COMPLETED
            self._close(now)

    def fail(self, now: Optional[datetime] = None) -> None:
        self.status = SessionStatus.FAILED
        self._close(now)

    def cancel(self, now: Optional[datetime] = None) -> None:
        self.status = SessionStatus.CANCELLED
        self._close(now)

    def _close(self, now: Optional[datetime]) -> None:
        self.end_time = now or utc_now()
        if self.start_time is not None:
            self.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def estimated_remaining_ms(self) -> int:
        return sum(
            p.estimated_duration_ms for p in self.recovery_plan
            if p.status != PhaseStatus.COMPLETED
        )

    def estimated_completion(self, now: Optional[datetime] = None) -> datetime:
        return (now or utc_now()) + timedelta(milliseconds=self.estimated_remaining_ms())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "module_id": self.module_id,
            "strategy": self.strategy.value if self.strategy else None,
            "status": self.status.value,
            "current_phase": self.current_phase,
            "overall_progress": self.overall_progress,
            "health_improvement": self.health_improvement,
            "initial_health_score": self.initial_health_score,
            "current_health_score": self.current_health_score,
            "completed_tasks": self.completed_tasks,
            "total_tasks": self.total_tasks,
            "recovery_plan": [p.to_dict() for p in self.recovery_plan],
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
        }
