"""Shared Kernel - Common types used across recovery bounded contexts.

This module contains the fixed workspace module enumeration, module
identity, and the case-insensitive parameter aliases used by the MCP
tool layer.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Literal, Tuple

from pydantic import BeforeValidator

from .errors import InvalidModuleError


# Order matters: aggregate displays and trend series iterate in this order.
KNOWN_MODULES: Tuple[str, ...] = (
    "auth",
    "i18n",
    "cv-processing",
    "multimedia",
    "analytics",
    "premium",
    "public-profiles",
    "recommendations",
    "admin",
    "workflow",
    "payments",
)

CORE_MODULES: Tuple[str, ...] = ("core", "shell", "logging")
FOUNDATION_MODULES: Tuple[str, ...] = ("auth", "i18n")

PACKAGES_DIR = "packages"


class RecoveryStrategy(str, Enum):
    """How aggressively a module is recovered.

    Values:
        REPAIR: Lightweight fix of configuration and dependencies
        REBUILD: Reconstruct build, tests and code from the current sources
        RESET: Full reset of configuration to defaults

    Declaration order is the tie-break order for strategy comparisons.
    """
    REPAIR = "repair"
    REBUILD = "rebuild"
    RESET = "reset"

    @classmethod
    def ordered(cls) -> Tuple["RecoveryStrategy", ...]:
        return (cls.REPAIR, cls.REBUILD, cls.RESET)


@dataclass(frozen=True)
class ModuleId:
    """Identifier of a workspace package.

    Invariants:
        - value must be one of KNOWN_MODULES

    Examples:
        >>> ModuleId("auth").path_in("/repo")
        PosixPath('/repo/packages/auth')
    """
    value: str

    def __post_init__(self) -> None:
        if self.value not in KNOWN_MODULES:
            raise InvalidModuleError(self.value)

    def path_in(self, workspace_path: Any) -> Path:
        """Return ``<workspace>/packages/<id>``."""
        return Path(workspace_path) / PACKAGES_DIR / self.value

    def __str__(self) -> str:
        return self.value


def is_known_module(module_id: str) -> bool:
    return module_id in KNOWN_MODULES


def utc_now() -> datetime:
    """Timezone-aware current time; all recorded timestamps use it."""
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utc_now().isoformat()


# ============================================================
# Type-Constrained Tool Parameters
# ============================================================
#
# Literal type aliases with BeforeValidator for case-insensitive
# normalization.  Produces flat {"enum": [...]} in JSON Schema
# while accepting wrong-case input at runtime.
# ============================================================


def _normalize_str(v: Any) -> Any:
    """Normalize string input: strip whitespace, lowercase."""
    return v.strip().lower() if isinstance(v, str) else v


StrategyName = Annotated[
    Literal["repair", "rebuild", "reset"],
    BeforeValidator(_normalize_str),
]

TimeframeName = Annotated[
    Literal["day", "week", "month", "all"],
    BeforeValidator(_normalize_str),
]

ExportFormat = Annotated[
    Literal["json"],
    BeforeValidator(_normalize_str),
]
