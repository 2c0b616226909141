"""Pytest fixtures for unit tests.

These fixtures support testing the recovery bounded contexts and the
service layer built on them:
- Health Context (on-disk workspaces)
- Phase Execution Context (module states for stub analyzers)
- Module Recovery / Analytics Contexts (recovery results)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from wsrecovery.domains.health import (
    ConfigurationReport,
    DependencyHealth,
    ErrorImpact,
    ErrorType,
    HealthStatus,
    IssueSeverity,
    ModuleCategory,
    ModuleIssue,
    ModuleState,
    build_recovery_state,
)
from wsrecovery.domains.shared import KNOWN_MODULES


# =============================================================================
# Workspace Fixtures
# =============================================================================


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture
def write_module() -> Callable[..., Path]:
    """Write a module directory; the defaults produce a score of 100."""

    def _write(
        root: Path,
        module_id: str,
        manifest: Optional[Dict[str, Any]] = None,
        tsconfig: Optional[Dict[str, Any]] = None,
        with_tsconfig: bool = True,
        with_build_config: bool = True,
        with_sources: bool = True,
    ) -> Path:
        module_path = root / "packages" / module_id
        module_path.mkdir(parents=True, exist_ok=True)
        _write_json(
            module_path / "package.json",
            manifest if manifest is not None else {
                "name": f"@ws/{module_id}",
                "version": "1.0.0",
                "scripts": {"build": "tsup", "test": "vitest run"},
            },
        )
        if with_tsconfig:
            _write_json(
                module_path / "tsconfig.json",
                tsconfig if tsconfig is not None else {"compilerOptions": {"strict": True}},
            )
        if with_build_config:
            (module_path / "tsup.config.ts").write_text("export default {}\n", encoding="utf-8")
        if with_sources:
            (module_path / "src").mkdir(exist_ok=True)
            (module_path / "src" / "index.ts").write_text("export {}\n", encoding="utf-8")
        return module_path

    return _write


@pytest.fixture
def workspace(tmp_path: Path, write_module: Callable[..., Path]) -> Path:
    """A well-formed workspace with every known module healthy."""
    _write_json(tmp_path / "package.json", {
        "name": "ws",
        "private": True,
        "workspaces": ["packages/*"],
        "scripts": {
            "build": "turbo build",
            "test": "turbo test",
            "lint": "eslint .",
            "type-check": "tsc -b",
        },
    })
    _write_json(tmp_path / "tsconfig.json", {
        "compilerOptions": {"paths": {"@ws/*": ["packages/*/src"]}},
        "references": [{"path": f"packages/{m}"} for m in KNOWN_MODULES],
    })
    for module_id in KNOWN_MODULES:
        write_module(tmp_path, module_id)
    return tmp_path


# =============================================================================
# Module State Fixtures
# =============================================================================


@pytest.fixture
def make_module_state() -> Callable[..., ModuleState]:
    """Build a ModuleState with a given score and number of critical errors."""

    def _make(
        module_id: str = "auth",
        score: int = 30,
        critical: int = 2,
        structural: bool = False,
    ) -> ModuleState:
        issues = tuple(
            ModuleIssue(
                error_id=f"critical-{i}-{module_id}",
                error_type=ErrorType.CONFIGURATION_INVALID,
                message=f"Critical problem {i}",
                impact=ErrorImpact.BLOCKS_BUILD,
                severity=IssueSeverity.CRITICAL,
            )
            for i in range(critical)
        )
        return ModuleState(
            module_id=module_id,
            category=ModuleCategory.for_module(module_id),
            health_score=score,
            status=HealthStatus.from_score(score, bool(issues)),
            package_json_valid=critical == 0,
            tsconfig_valid=True,
            build_config_valid=True,
            dependency_health=DependencyHealth.RESOLVED,
            recovery_state=build_recovery_state(score, structural, critical_errors=critical),
            critical_errors=issues,
        )

    return _make


@pytest.fixture
def stub_analyzer(make_module_state: Callable[..., ModuleState]) -> MagicMock:
    """Analyzer double: every module scores 30 and the workspace config is valid."""
    analyzer = MagicMock()
    analyzer.analyze_module = AsyncMock(
        side_effect=lambda module_id: make_module_state(module_id, score=30)
    )
    analyzer.analyze_workspace = AsyncMock()
    analyzer.validate_configuration = MagicMock(return_value=ConfigurationReport())
    analyzer.create_backup = AsyncMock(return_value=Path("/tmp/backup"))
    analyzer.last_workspace_health = None
    return analyzer
