"""Health Domain Services.

Contains the HealthAssessor (per-module file/config inspection), the
WorkspaceAnalyzer (fan-out, aggregation, configuration check, backup)
and the ModuleValidator used as the validation collaborator.
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from wsrecovery.domains.shared.kernel import (
    KNOWN_MODULES,
    PACKAGES_DIR,
    ModuleId,
    RecoveryStrategy,
    utc_now,
)

from .aggregates import WorkspaceHealth
from .entities import (
    ConfigurationReport,
    ModuleIssue,
    ModuleState,
    ModuleValidationResult,
    RecoveryState,
)
from .value_objects import (
    BUILD_CONFIG_FILES,
    DEPENDENCY_SECTIONS,
    INDEX_CANDIDATES,
    REQUIRED_MANIFEST_FIELDS,
    REQUIRED_ROOT_SCRIPTS,
    STRATEGY_ESTIMATED_DURATION_MS,
    WORKSPACE_GLOB,
    DependencyHealth,
    ErrorImpact,
    ErrorType,
    HealthPenalties,
    HealthStatus,
    HealthThresholds,
    IssueSeverity,
    ModuleCategory,
    RecoveryPriority,
)

logger = logging.getLogger(__name__)

BACKUP_DIR = ".recovery-backups"


def select_strategy(
    score: int,
    structural: bool,
    dependency_health: DependencyHealth = DependencyHealth.RESOLVED,
    critical_errors: int = 0,
) -> RecoveryStrategy:
    """Pick a recovery strategy from a health score.

    ``reset`` when the module tree is absent/empty/unreadable or the score
    is below the reset threshold, ``repair`` from the repair threshold up.
    In between, conflicted dependencies or critical errors call for
    ``rebuild``; anything else is repaired.
    """
    if structural or score < HealthThresholds.RESET:
        return RecoveryStrategy.RESET
    if score >= HealthThresholds.REPAIR:
        return RecoveryStrategy.REPAIR
    if dependency_health == DependencyHealth.CONFLICTED or critical_errors > 0:
        return RecoveryStrategy.REBUILD
    return RecoveryStrategy.REPAIR


def build_recovery_state(
    score: int,
    structural: bool,
    dependency_health: DependencyHealth = DependencyHealth.RESOLVED,
    critical_errors: int = 0,
) -> RecoveryState:
    strategy = select_strategy(score, structural, dependency_health, critical_errors)
    needed = score < HealthThresholds.HEALTHY
    return RecoveryState(
        recovery_needed=needed,
        recovery_priority=RecoveryPriority.from_score(score),
        recovery_strategy=strategy,
        estimated_recovery_time_ms=STRATEGY_ESTIMATED_DURATION_MS[strategy] if needed else 0,
    )


# ── Issue collection ──────────────────────────────────────────────────

@dataclass
class _IssueCollector:
    module_id: str
    critical: List[ModuleIssue] = field(default_factory=list)
    errors: List[ModuleIssue] = field(default_factory=list)
    warnings: List[ModuleIssue] = field(default_factory=list)
    build_warnings: List[ModuleIssue] = field(default_factory=list)

    def add(
        self,
        severity: IssueSeverity,
        error_id: str,
        error_type: ErrorType,
        message: str,
        impact: ErrorImpact,
        file_path: Optional[Path] = None,
    ) -> None:
        issue = ModuleIssue(
            error_id=f"{error_id}-{self.module_id}",
            error_type=error_type,
            message=message,
            impact=impact,
            severity=severity,
            file_path=str(file_path) if file_path else None,
        )
        target = {
            IssueSeverity.CRITICAL: self.critical,
            IssueSeverity.ERROR: self.errors,
            IssueSeverity.WARNING: self.warnings,
            IssueSeverity.BUILD_WARNING: self.build_warnings,
        }[severity]
        target.append(issue)


@dataclass
class _ManifestFindings:
    valid: bool = False
    has_build_script: bool = False
    dependencies: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)


# ── HealthAssessor ────────────────────────────────────────────────────

@dataclass
class HealthAssessor:
    """Inspects one module directory and scores it.

    Every check is independent and appends issues with a stable
    ``<check>-<module_id>`` id. The score starts at 100 and loses a fixed
    penalty per issue, clamped to [0, 100].
    """
    workspace_path: Path
    penalties: HealthPenalties = field(default_factory=HealthPenalties)

    def module_path(self, module_id: str) -> Path:
        return ModuleId(module_id).path_in(self.workspace_path)

    def assess(self, module_id: str) -> ModuleState:
        """Assess a module synchronously.

        Raises:
            InvalidModuleError: If module_id is not a known module
        """
        path = self.module_path(module_id)
        issues = _IssueCollector(module_id)

        if not path.is_dir():
            issues.add(
                IssueSeverity.CRITICAL, "missing-module", ErrorType.DEPENDENCY_MISSING,
                f"Module directory not found: {path}",
                ErrorImpact.BLOCKS_FUNCTIONALITY, path,
            )
            return self._finalize(module_id, issues, _ManifestFindings(),
                                  tsconfig_valid=False, build_config_valid=False,
                                  dependency_health=DependencyHealth.MISSING,
                                  force_zero=True)

        try:
            is_empty = not any(path.iterdir())
        except OSError as e:
            issues.add(
                IssueSeverity.CRITICAL, "unreadable-module", ErrorType.FILESYSTEM_ERROR,
                f"Module directory cannot be read: {e}",
                ErrorImpact.BLOCKS_FUNCTIONALITY, path,
            )
            return self._finalize(module_id, issues, _ManifestFindings(),
                                  tsconfig_valid=False, build_config_valid=False,
                                  dependency_health=DependencyHealth.MISSING,
                                  force_zero=True)
        if is_empty:
            issues.add(
                IssueSeverity.CRITICAL, "empty-module", ErrorType.STRUCTURE_INVALID,
                f"Module directory is empty: {path}",
                ErrorImpact.BLOCKS_FUNCTIONALITY, path,
            )
            return self._finalize(module_id, issues, _ManifestFindings(),
                                  tsconfig_valid=False, build_config_valid=False,
                                  dependency_health=DependencyHealth.MISSING,
                                  force_zero=True)

        manifest = self._check_manifest(path, issues)
        tsconfig_valid = self._check_tsconfig(path, issues)
        has_build_file = self._check_build_config(path, issues)
        dependency_health = self._check_dependencies(path, manifest, issues)
        self._check_source_structure(path, issues)

        return self._finalize(
            module_id, issues, manifest,
            tsconfig_valid=tsconfig_valid,
            build_config_valid=manifest.has_build_script or has_build_file,
            dependency_health=dependency_health,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_manifest(self, path: Path, issues: _IssueCollector) -> _ManifestFindings:
        findings = _ManifestFindings()
        manifest_path = path / "package.json"
        if not manifest_path.is_file():
            issues.add(
                IssueSeverity.CRITICAL, "missing-package-json", ErrorType.CONFIGURATION_INVALID,
                "package.json not found", ErrorImpact.BLOCKS_BUILD, manifest_path,
            )
            return findings

        data = _read_json(manifest_path)
        if not isinstance(data, dict):
            issues.add(
                IssueSeverity.CRITICAL, "invalid-package-json", ErrorType.SYNTAX_ERROR,
                "package.json is not a valid JSON object", ErrorImpact.BLOCKS_BUILD,
                manifest_path,
            )
            return findings

        findings.valid = True
        for required in REQUIRED_MANIFEST_FIELDS:
            if not data.get(required):
                findings.valid = False
                issues.add(
                    IssueSeverity.ERROR, f"missing-field-{required}",
                    ErrorType.CONFIGURATION_INVALID,
                    f"Missing required field: {required}", ErrorImpact.DEGRADES,
                    manifest_path,
                )

        scripts = data.get("scripts")
        findings.has_build_script = isinstance(scripts, dict) and bool(scripts.get("build"))

        versions: Dict[str, str] = {}
        for section in DEPENDENCY_SECTIONS:
            declared = data.get(section)
            if not isinstance(declared, dict):
                continue
            for name, version in declared.items():
                if name not in versions:
                    versions[name] = str(version)
                    findings.dependencies.append(name)
                elif versions[name] != str(version) and name not in findings.conflicts:
                    findings.conflicts.append(name)
        return findings

    def _check_tsconfig(self, path: Path, issues: _IssueCollector) -> bool:
        tsconfig_path = path / "tsconfig.json"
        if not tsconfig_path.is_file():
            issues.add(
                IssueSeverity.ERROR, "missing-tsconfig", ErrorType.CONFIGURATION_INVALID,
                "tsconfig.json not found", ErrorImpact.DEGRADES, tsconfig_path,
            )
            return False
        data = _read_json(tsconfig_path)
        if not isinstance(data, dict):
            issues.add(
                IssueSeverity.ERROR, "invalid-tsconfig", ErrorType.SYNTAX_ERROR,
                "tsconfig.json is not a valid JSON object", ErrorImpact.DEGRADES,
                tsconfig_path,
            )
            return False
        if "compilerOptions" not in data:
            issues.add(
                IssueSeverity.WARNING, "tsconfig-no-compiler-options",
                ErrorType.CONFIGURATION_INVALID,
                "tsconfig.json has no compilerOptions", ErrorImpact.COSMETIC,
                tsconfig_path,
            )
            return False
        return True

    def _check_build_config(self, path: Path, issues: _IssueCollector) -> bool:
        if any((path / name).is_file() for name in BUILD_CONFIG_FILES):
            return True
        issues.add(
            IssueSeverity.BUILD_WARNING, "no-build-config", ErrorType.BUILD_FAILURE,
            "No recognized build configuration file found", ErrorImpact.COSMETIC,
        )
        return False

    def _check_dependencies(
        self, path: Path, manifest: _ManifestFindings, issues: _IssueCollector,
    ) -> DependencyHealth:
        if manifest.dependencies and not (path / "node_modules").is_dir():
            issues.add(
                IssueSeverity.CRITICAL, "missing-dependencies", ErrorType.DEPENDENCY_MISSING,
                f"{len(manifest.dependencies)} declared dependencies are not installed",
                ErrorImpact.BLOCKS_BUILD, path / "node_modules",
            )
            return DependencyHealth.MISSING
        if manifest.conflicts:
            issues.add(
                IssueSeverity.ERROR, "dependency-conflict", ErrorType.DEPENDENCY_CONFLICT,
                "Conflicting versions declared for: " + ", ".join(manifest.conflicts),
                ErrorImpact.DEGRADES, path / "package.json",
            )
            return DependencyHealth.CONFLICTED
        return DependencyHealth.RESOLVED

    def _check_source_structure(self, path: Path, issues: _IssueCollector) -> None:
        if not (path / "src").is_dir():
            issues.add(
                IssueSeverity.WARNING, "no-src-directory", ErrorType.STRUCTURE_INVALID,
                "No src directory found", ErrorImpact.COSMETIC, path / "src",
            )
        if not any((path / candidate).is_file() for candidate in INDEX_CANDIDATES):
            issues.add(
                IssueSeverity.WARNING, "no-index-file", ErrorType.STRUCTURE_INVALID,
                "No index entry point found", ErrorImpact.COSMETIC,
            )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _finalize(
        self,
        module_id: str,
        issues: _IssueCollector,
        manifest: _ManifestFindings,
        tsconfig_valid: bool,
        build_config_valid: bool,
        dependency_health: DependencyHealth,
        force_zero: bool = False,
    ) -> ModuleState:
        if force_zero:
            score = 0
        else:
            score = self.penalties.score(
                critical=len(issues.critical),
                errors=len(issues.errors),
                warnings=len(issues.warnings),
                build_warnings=len(issues.build_warnings),
            )
        blocking = any(e.impact.is_blocking for e in issues.critical)
        structural = any(e.is_structural for e in issues.critical)
        return ModuleState(
            module_id=module_id,
            category=ModuleCategory.for_module(module_id),
            health_score=score,
            status=HealthStatus.from_score(score, blocking),
            package_json_valid=manifest.valid,
            tsconfig_valid=tsconfig_valid,
            build_config_valid=build_config_valid,
            dependency_health=dependency_health,
            recovery_state=build_recovery_state(
                score, structural, dependency_health, len(issues.critical),
            ),
            critical_errors=tuple(issues.critical),
            non_critical_errors=tuple(issues.errors),
            warnings=tuple(issues.warnings),
            build_warnings=tuple(issues.build_warnings),
            dependencies=tuple(manifest.dependencies),
            last_assessment=utc_now(),
        )


def _read_json(path: Path) -> Any:
    """Parse a JSON file; None when it cannot be read or parsed."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.debug("Could not parse %s: %s", path, e)
        return None


def failed_module_state(module_id: str, error: BaseException) -> ModuleState:
    """Synthetic state substituted when a module cannot be analyzed."""
    issue = ModuleIssue(
        error_id=f"analysis-failed-{module_id}",
        error_type=ErrorType.FILESYSTEM_ERROR,
        message=f"Analysis failed: {error}",
        impact=ErrorImpact.BLOCKS_FUNCTIONALITY,
        severity=IssueSeverity.CRITICAL,
    )
    return ModuleState(
        module_id=module_id,
        category=ModuleCategory.for_module(module_id),
        health_score=0,
        status=HealthStatus.FAILED,
        package_json_valid=False,
        tsconfig_valid=False,
        build_config_valid=False,
        dependency_health=DependencyHealth.MISSING,
        recovery_state=build_recovery_state(0, structural=True),
        critical_errors=(issue,),
    )


# ── WorkspaceAnalyzer ─────────────────────────────────────────────────

class WorkspaceAnalyzer:
    """Runs the HealthAssessor over workspace modules.

    Holds the last result per module in an instance-owned cache; nothing
    is shared between analyzer instances.
    """

    def __init__(self, workspace_path: Any, assessor: Optional[HealthAssessor] = None) -> None:
        self.workspace_path = Path(workspace_path)
        self.assessor = assessor or HealthAssessor(self.workspace_path)
        self._analysis_cache: Dict[str, ModuleState] = {}
        self.last_workspace_health: Optional[WorkspaceHealth] = None

    async def analyze_module(self, module_id: str) -> ModuleState:
        """Assess one module from scratch.

        Raises:
            InvalidModuleError: If module_id is not a known module
        """
        ModuleId(module_id)
        state = await asyncio.to_thread(self.assessor.assess, module_id)
        self._analysis_cache[module_id] = state
        logger.debug(
            "Module %s scored %d (%s)", module_id, state.health_score, state.status.value
        )
        return state

    async def analyze_workspace(
        self,
        modules: Optional[Iterable[str]] = None,
        include_recommendations: bool = True,
    ) -> WorkspaceHealth:
        """Analyze the requested modules (all known modules by default).

        A module whose analysis raises is replaced by a synthetic failed
        state; the scan itself never fails.
        """
        module_ids = list(modules) if modules is not None else list(KNOWN_MODULES)
        results = await asyncio.gather(
            *(self.analyze_module(m) for m in module_ids),
            return_exceptions=True,
        )
        states: Dict[str, ModuleState] = {}
        for module_id, result in zip(module_ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Analysis of module %s failed: %s", module_id, result)
                states[module_id] = failed_module_state(module_id, result)
            else:
                states[module_id] = result

        health = WorkspaceHealth.create(
            str(self.workspace_path), states, include_recommendations,
        )
        self.last_workspace_health = health
        logger.info(
            "Workspace analyzed: %d modules, overall score %d (%s)",
            len(states), health.overall_health_score, health.health_status.value,
        )
        return health

    def cached_state(self, module_id: str) -> Optional[ModuleState]:
        return self._analysis_cache.get(module_id)

    def clear_cache(self) -> None:
        self._analysis_cache.clear()
        self.last_workspace_health = None

    # ------------------------------------------------------------------
    # Workspace configuration
    # ------------------------------------------------------------------

    def validate_configuration(self) -> ConfigurationReport:
        """Advisory structural check of the workspace root. No side effects."""
        report = ConfigurationReport()
        root = self.workspace_path

        manifest_path = root / "package.json"
        if not manifest_path.is_file():
            report.add_error("Root package.json not found")
        else:
            manifest = _read_json(manifest_path)
            if not isinstance(manifest, dict):
                report.add_error("Root package.json is not valid JSON")
            else:
                workspaces = manifest.get("workspaces")
                if not isinstance(workspaces, list):
                    report.add_error("Workspaces configuration missing")
                elif WORKSPACE_GLOB not in workspaces:
                    report.add_error(f"Workspace glob '{WORKSPACE_GLOB}' not declared")
                scripts = manifest.get("scripts")
                scripts = scripts if isinstance(scripts, dict) else {}
                for script in REQUIRED_ROOT_SCRIPTS:
                    if script not in scripts:
                        report.warnings.append(f"Missing script: {script}")

        tsconfig_path = root / "tsconfig.json"
        if not tsconfig_path.is_file():
            report.warnings.append("Root tsconfig.json not found")
        else:
            tsconfig = _read_json(tsconfig_path)
            if not isinstance(tsconfig, dict):
                report.warnings.append("Root tsconfig.json is not valid JSON")
            else:
                if "references" not in tsconfig:
                    report.warnings.append("Project references not configured")
                options = tsconfig.get("compilerOptions")
                if not isinstance(options, dict) or "paths" not in options:
                    report.warnings.append("Path mappings not configured")

        packages_dir = root / PACKAGES_DIR
        if not packages_dir.is_dir():
            report.add_error("Packages directory not found")
        else:
            for module_id in KNOWN_MODULES:
                if not (packages_dir / module_id).is_dir():
                    report.warnings.append(f"Module directory missing: {module_id}")

        if report.warnings:
            report.recommendations.append(
                "Consider addressing configuration warnings for optimal workspace setup"
            )
        else:
            report.recommendations.append("Workspace configuration is optimal")
        return report

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def create_backup(self, module_ids: Optional[Iterable[str]] = None) -> Path:
        """Copy module directories (without node_modules) to a timestamped folder.

        Returns:
            The backup directory
        """
        modules = list(module_ids) if module_ids is not None else list(KNOWN_MODULES)
        for module_id in modules:
            ModuleId(module_id)
        stamp = utc_now().strftime("%Y%m%dT%H%M%S%fZ")
        backup_root = self.workspace_path / BACKUP_DIR / stamp
        copied = await asyncio.to_thread(self._copy_modules, modules, backup_root)
        logger.info("Backup of %d modules written to %s", copied, backup_root)
        return backup_root

    def _copy_modules(self, modules: List[str], backup_root: Path) -> int:
        backup_root.mkdir(parents=True, exist_ok=True)
        copied = 0
        for module_id in modules:
            source = self.assessor.module_path(module_id)
            if not source.is_dir():
                continue
            shutil.copytree(
                source,
                backup_root / module_id,
                ignore=shutil.ignore_patterns("node_modules"),
            )
            copied += 1
        return copied


# ── ModuleValidator ───────────────────────────────────────────────────

@dataclass
class ModuleValidator:
    """Validation collaborator backed by the workspace analyzer."""
    analyzer: WorkspaceAnalyzer

    async def validate_single_module(self, module_id: str) -> ModuleValidationResult:
        state = await self.analyzer.analyze_module(module_id)
        issues: Tuple[str, ...] = tuple(
            i.message for i in (*state.critical_errors, *state.non_critical_errors)
        )
        recommendations: List[str] = []
        if state.recovery_state.recovery_needed:
            recommendations.append(
                f"Run {state.recovery_state.recovery_strategy.value} recovery"
            )
        return ModuleValidationResult(
            module_id=module_id,
            is_valid=not state.critical_errors
            and state.health_score >= HealthThresholds.DEGRADED,
            health_score=state.health_score,
            issues=issues,
            recommendations=tuple(recommendations),
        )
