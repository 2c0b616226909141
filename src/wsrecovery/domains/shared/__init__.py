"""Shared Kernel - cross-context types and the error taxonomy."""
from .errors import (
    InvalidModuleError,
    PhaseNotFoundError,
    PhaseTimeoutError,
    PrerequisiteError,
    RecoveryError,
    ReportTemplateNotFoundError,
    ReportWriteError,
    SessionNotFoundError,
    TaskExecutionError,
    ValidationCriterionFailure,
)
from .kernel import (
    CORE_MODULES,
    FOUNDATION_MODULES,
    KNOWN_MODULES,
    PACKAGES_DIR,
    RecoveryStrategy,
    ExportFormat,
    ModuleId,
    StrategyName,
    TimeframeName,
    is_known_module,
    iso_now,
    utc_now,
)

__all__ = [
    # Errors
    "InvalidModuleError",
    "PhaseNotFoundError",
    "PhaseTimeoutError",
    "PrerequisiteError",
    "RecoveryError",
    "ReportTemplateNotFoundError",
    "ReportWriteError",
    "SessionNotFoundError",
    "TaskExecutionError",
    "ValidationCriterionFailure",
    # Kernel
    "CORE_MODULES",
    "FOUNDATION_MODULES",
    "KNOWN_MODULES",
    "PACKAGES_DIR",
    "RecoveryStrategy",
    "ExportFormat",
    "ModuleId",
    "StrategyName",
    "TimeframeName",
    "is_known_module",
    "iso_now",
    "utc_now",
]
