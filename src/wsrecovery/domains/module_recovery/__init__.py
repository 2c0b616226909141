"""Module Recovery Bounded Context.

Strategy-specific recovery of a single module (dependency resolution,
configuration repair, code/build/test fixes, validation) and ordered
multi-module recovery.
"""
from .value_objects import (
    STEP_HEALTH_IMPROVEMENT,
    STRATEGY_STEPS,
    RecoveryContext,
    RecoveryOutcome,
    RecoveryStep,
)
from .entities import (
    RecoveryResult,
    RecoveryStepResult,
)
from .services import (
    CommandResult,
    CommandRunner,
    FilesystemModuleRecovery,
    ModuleAnalyzerProtocol,
    ModuleRecoveryProtocol,
    order_for_recovery,
    recover_modules,
)

__all__ = [
    # Value objects
    "STEP_HEALTH_IMPROVEMENT",
    "STRATEGY_STEPS",
    "RecoveryContext",
    "RecoveryOutcome",
    "RecoveryStep",
    # Entities
    "RecoveryResult",
    "RecoveryStepResult",
    # Services
    "CommandResult",
    "CommandRunner",
    "FilesystemModuleRecovery",
    "ModuleAnalyzerProtocol",
    "ModuleRecoveryProtocol",
    "order_for_recovery",
    "recover_modules",
]
