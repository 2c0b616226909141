"""Module Recovery Domain Value Objects."""
from __future__ import annotations

import enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

from wsrecovery.domains.shared.kernel import RecoveryStrategy


class RecoveryContext(BaseModel):
    """Per-invocation recovery parameters.

    Passed by value and never mutated; use ``model_copy(update=...)`` to
    derive a variant.

    Attributes:
        target_health_score: Score a recovery must reach to count as success
        max_attempts: Attempts per recovery step before giving up
        timeout_ms: Wall-clock budget for one module recovery
        dry_run: Simulate every action with nominal results
        skip_backup: Do not snapshot the module before touching it
    """
    model_config = ConfigDict(frozen=True)

    target_health_score: int = Field(default=85, ge=0, le=100)
    max_attempts: int = Field(default=1, ge=1, le=10)
    timeout_ms: int = Field(default=300000, gt=0)
    dry_run: bool = False
    skip_backup: bool = False


class RecoveryStep(str, enum.Enum):
    """Concrete steps the filesystem collaborator performs."""
    DEPENDENCY_RESOLUTION = "dependency-resolution"
    CONFIGURATION_REPAIR = "configuration-repair"
    CODE_REPAIR = "code-repair"
    BUILD_FIX = "build-fix"
    TEST_FIX = "test-fix"
    VALIDATION = "validation"


class RecoveryOutcome(str, enum.Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


STRATEGY_STEPS: Dict[RecoveryStrategy, Tuple[RecoveryStep, ...]] = {
    RecoveryStrategy.REPAIR: (
        RecoveryStep.DEPENDENCY_RESOLUTION,
        RecoveryStep.CONFIGURATION_REPAIR,
        RecoveryStep.VALIDATION,
    ),
    RecoveryStrategy.REBUILD: (
        RecoveryStep.DEPENDENCY_RESOLUTION,
        RecoveryStep.CONFIGURATION_REPAIR,
        RecoveryStep.CODE_REPAIR,
        RecoveryStep.BUILD_FIX,
        RecoveryStep.TEST_FIX,
        RecoveryStep.VALIDATION,
    ),
    RecoveryStrategy.RESET: (
        RecoveryStep.CONFIGURATION_REPAIR,
        RecoveryStep.DEPENDENCY_RESOLUTION,
        RecoveryStep.VALIDATION,
    ),
}

# Nominal health gain credited to a successful step.
STEP_HEALTH_IMPROVEMENT: Dict[RecoveryStep, int] = {
    RecoveryStep.DEPENDENCY_RESOLUTION: 15,
    RecoveryStep.CONFIGURATION_REPAIR: 10,
    RecoveryStep.CODE_REPAIR: 20,
    RecoveryStep.BUILD_FIX: 25,
    RecoveryStep.TEST_FIX: 15,
    RecoveryStep.VALIDATION: 5,
}

STEP_COMMANDS: Dict[RecoveryStep, Tuple[str, ...]] = {
    RecoveryStep.DEPENDENCY_RESOLUTION: ("npm", "install"),
    RecoveryStep.BUILD_FIX: ("npm", "run", "build"),
    RecoveryStep.TEST_FIX: ("npm", "test"),
}
