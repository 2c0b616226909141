"""Tests for health services."""
import json

import pytest

from wsrecovery.domains.health import (
    DependencyHealth,
    ErrorImpact,
    HealthStatus,
    ModuleValidator,
    WorkspaceAnalyzer,
)
from wsrecovery.domains.health.services import BACKUP_DIR
from wsrecovery.domains.shared import InvalidModuleError, KNOWN_MODULES, RecoveryStrategy


# ── analyze_module ───────────────────────────────────────────────────


class TestAnalyzeModule:
    @pytest.mark.asyncio
    async def test_healthy_module_scores_100(self, workspace):
        state = await WorkspaceAnalyzer(workspace).analyze_module("auth")
        assert state.health_score == 100
        assert state.status == HealthStatus.HEALTHY
        assert state.package_json_valid
        assert state.tsconfig_valid
        assert state.build_config_valid
        assert state.dependency_health == DependencyHealth.RESOLVED
        assert not state.recovery_state.recovery_needed

    @pytest.mark.asyncio
    async def test_absent_directory(self, tmp_path):
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("payments")
        assert state.health_score == 0
        assert state.status == HealthStatus.FAILED
        assert len(state.critical_errors) == 1
        assert state.critical_errors[0].impact == ErrorImpact.BLOCKS_FUNCTIONALITY
        assert state.recovery_state.recovery_strategy == RecoveryStrategy.RESET

    @pytest.mark.asyncio
    async def test_empty_directory(self, tmp_path):
        (tmp_path / "packages" / "admin").mkdir(parents=True)
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("admin")
        assert state.health_score == 0
        assert state.status == HealthStatus.FAILED
        assert state.critical_errors[0].error_id == "empty-module-admin"
        assert state.recovery_state.recovery_strategy == RecoveryStrategy.RESET

    @pytest.mark.asyncio
    async def test_unknown_module_raises(self, workspace):
        with pytest.raises(InvalidModuleError):
            await WorkspaceAnalyzer(workspace).analyze_module("billing")

    @pytest.mark.asyncio
    async def test_bare_manifest_is_degraded(self, tmp_path, write_module):
        write_module(
            tmp_path, "i18n",
            with_tsconfig=False, with_build_config=False, with_sources=False,
        )
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("i18n")
        # missing tsconfig (-10), build config (-5), src (-5), index (-5)
        assert state.health_score == 75
        assert state.status == HealthStatus.DEGRADED
        assert not state.tsconfig_valid
        assert state.build_config_valid

    @pytest.mark.asyncio
    async def test_invalid_manifest_is_critical(self, tmp_path, write_module):
        module_path = write_module(tmp_path, "auth")
        (module_path / "package.json").write_text("{not json", encoding="utf-8")
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("auth")
        assert state.health_score == 75
        assert not state.package_json_valid
        assert state.critical_errors[0].error_id == "invalid-package-json-auth"

    @pytest.mark.asyncio
    async def test_missing_required_field(self, tmp_path, write_module):
        write_module(tmp_path, "auth", manifest={"version": "1.0.0", "scripts": {"build": "tsup"}})
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("auth")
        assert state.health_score == 90
        assert not state.package_json_valid
        assert [e.error_id for e in state.non_critical_errors] == ["missing-field-name-auth"]

    @pytest.mark.asyncio
    async def test_uninstalled_dependencies(self, tmp_path, write_module):
        write_module(tmp_path, "auth", manifest={
            "name": "@ws/auth", "version": "1.0.0",
            "scripts": {"build": "tsup"},
            "dependencies": {"zod": "^3.0.0"},
        })
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("auth")
        assert state.health_score == 75
        assert state.dependency_health == DependencyHealth.MISSING
        assert state.dependencies == ("zod",)

    @pytest.mark.asyncio
    async def test_conflicting_dependency_versions(self, tmp_path, write_module):
        module_path = write_module(tmp_path, "auth", manifest={
            "name": "@ws/auth", "version": "1.0.0",
            "scripts": {"build": "tsup"},
            "dependencies": {"zod": "^3.0.0"},
            "devDependencies": {"zod": "^2.0.0"},
        })
        (module_path / "node_modules").mkdir()
        state = await WorkspaceAnalyzer(tmp_path).analyze_module("auth")
        assert state.health_score == 90
        assert state.dependency_health == DependencyHealth.CONFLICTED

    @pytest.mark.asyncio
    async def test_result_is_cached_per_instance(self, workspace):
        analyzer = WorkspaceAnalyzer(workspace)
        state = await analyzer.analyze_module("auth")
        assert analyzer.cached_state("auth") is state
        assert WorkspaceAnalyzer(workspace).cached_state("auth") is None
        analyzer.clear_cache()
        assert analyzer.cached_state("auth") is None


# ── analyze_workspace ────────────────────────────────────────────────


class TestAnalyzeWorkspace:
    @pytest.mark.asyncio
    async def test_all_known_modules_by_default(self, workspace):
        analyzer = WorkspaceAnalyzer(workspace)
        health = await analyzer.analyze_workspace()
        assert list(health.module_states) == list(KNOWN_MODULES)
        assert health.overall_health_score == 100
        assert analyzer.last_workspace_health is health

    @pytest.mark.asyncio
    async def test_failed_analysis_substitutes_failed_state(self, workspace):
        health = await WorkspaceAnalyzer(workspace).analyze_workspace(["auth", "billing"])
        assert health.module_states["auth"].health_score == 100
        failed = health.module_states["billing"]
        assert failed.health_score == 0
        assert failed.status == HealthStatus.FAILED
        assert "Analysis failed" in failed.critical_errors[0].message

    @pytest.mark.asyncio
    async def test_weighted_score(self, workspace):
        import shutil
        shutil.rmtree(workspace / "packages" / "auth")
        health = await WorkspaceAnalyzer(workspace).analyze_workspace(["auth", "cv-processing"])
        # auth weighs 2 at score 0, cv-processing weighs 1 at score 100
        assert health.overall_health_score == 33
        assert health.modules_needing_recovery == ["auth"]


# ── validate_configuration ───────────────────────────────────────────


class TestValidateConfiguration:
    def test_well_formed_workspace(self, workspace):
        report = WorkspaceAnalyzer(workspace).validate_configuration()
        assert report.valid
        assert report.errors == []
        assert report.warnings == []
        assert report.recommendations == ["Workspace configuration is optimal"]

    def test_empty_directory(self, tmp_path):
        report = WorkspaceAnalyzer(tmp_path).validate_configuration()
        assert not report.valid
        assert "Root package.json not found" in report.errors
        assert "Packages directory not found" in report.errors
        assert "Root tsconfig.json not found" in report.warnings
        assert report.recommendations == [
            "Consider addressing configuration warnings for optimal workspace setup"
        ]

    def test_missing_workspaces_and_scripts(self, workspace):
        (workspace / "package.json").write_text(json.dumps({"name": "ws"}), encoding="utf-8")
        report = WorkspaceAnalyzer(workspace).validate_configuration()
        assert "Workspaces configuration missing" in report.errors
        for script in ("build", "test", "lint", "type-check"):
            assert f"Missing script: {script}" in report.warnings

    def test_missing_module_directory_is_warning(self, workspace):
        import shutil
        shutil.rmtree(workspace / "packages" / "premium")
        report = WorkspaceAnalyzer(workspace).validate_configuration()
        assert report.valid
        assert report.warnings == ["Module directory missing: premium"]


# ── create_backup ────────────────────────────────────────────────────


class TestCreateBackup:
    @pytest.mark.asyncio
    async def test_copies_module_without_node_modules(self, workspace):
        (workspace / "packages" / "auth" / "node_modules" / "zod").mkdir(parents=True)
        backup = await WorkspaceAnalyzer(workspace).create_backup(["auth"])
        assert backup.parent == workspace / BACKUP_DIR
        assert (backup / "auth" / "package.json").is_file()
        assert not (backup / "auth" / "node_modules").exists()
        assert not (backup / "i18n").exists()

    @pytest.mark.asyncio
    async def test_rejects_unknown_module(self, workspace):
        with pytest.raises(InvalidModuleError):
            await WorkspaceAnalyzer(workspace).create_backup(["billing"])


# ── ModuleValidator ──────────────────────────────────────────────────


class TestModuleValidator:
    @pytest.mark.asyncio
    async def test_healthy_module_is_valid(self, workspace):
        result = await ModuleValidator(WorkspaceAnalyzer(workspace)).validate_single_module("auth")
        assert result.is_valid
        assert result.health_score == 100
        assert result.issues == ()

    @pytest.mark.asyncio
    async def test_absent_module_is_invalid(self, tmp_path):
        result = await ModuleValidator(WorkspaceAnalyzer(tmp_path)).validate_single_module("auth")
        assert not result.is_valid
        assert result.recommendations == ("Run reset recovery",)
