"""Module Recovery Domain Services.

Contains the filesystem-backed module-recovery collaborator, the
package-manager command runner, and multi-module recovery ordering.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any, Dict, Iterable, List, Optional, Protocol, Sequence, runtime_checkable,
)

from wsrecovery.domains.health.entities import ModuleState
from wsrecovery.domains.health.value_objects import ModuleCategory
from wsrecovery.domains.shared.kernel import KNOWN_MODULES, ModuleId, RecoveryStrategy, utc_now

from .entities import RecoveryResult, RecoveryStepResult
from .value_objects import (
    STEP_COMMANDS,
    STEP_HEALTH_IMPROVEMENT,
    STRATEGY_STEPS,
    RecoveryContext,
    RecoveryOutcome,
    RecoveryStep,
)

logger = logging.getLogger(__name__)

DEFAULT_TSCONFIG: Dict[str, Any] = {
    "extends": "../../tsconfig.json",
    "compilerOptions": {"outDir": "dist", "rootDir": "src"},
    "include": ["src"],
}


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class ModuleAnalyzerProtocol(Protocol):
    """Protocol for module health analysis (anti-corruption layer)."""
    async def analyze_module(self, module_id: str) -> ModuleState: ...

    async def create_backup(self, module_ids: Optional[Iterable[str]] = None) -> Path: ...


@runtime_checkable
class ModuleRecoveryProtocol(Protocol):
    """Protocol for the module-recovery collaborator used by repair tasks."""
    async def execute_recovery(
        self, module_id: str, strategy: RecoveryStrategy, context: RecoveryContext,
    ) -> RecoveryResult: ...


# ── CommandRunner ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs package-manager commands as asyncio subprocesses."""

    async def run(
        self, args: Sequence[str], cwd: Path, timeout_s: Optional[float] = None,
    ) -> CommandResult:
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult(returncode=127, stderr=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                returncode=-1,
                stderr=f"{' '.join(args)} timed out after {timeout_s}s",
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        return CommandResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            duration_ms=int((time.monotonic() - start) * 1000),
        )


# ── FilesystemModuleRecovery ──────────────────────────────────────────

@dataclass
class FilesystemModuleRecovery:
    """Default module-recovery collaborator.

    Runs the step list of the chosen strategy against the module
    directory. In dry-run mode every step succeeds with its nominal
    health improvement and nothing on disk changes.
    """
    analyzer: ModuleAnalyzerProtocol
    workspace_path: Path
    command_runner: CommandRunner = field(default_factory=CommandRunner)

    async def execute_recovery(
        self, module_id: str, strategy: RecoveryStrategy, context: RecoveryContext,
    ) -> RecoveryResult:
        """Recover one module.

        Raises:
            InvalidModuleError: If module_id is not a known module
        """
        module_path = ModuleId(module_id).path_in(self.workspace_path)
        strategy = RecoveryStrategy(strategy)
        start = time.monotonic()
        started_at = utc_now()
        initial = await self.analyzer.analyze_module(module_id)
        logger.info(
            "Recovering %s with %s (initial score %d, dry_run=%s)",
            module_id, strategy.value, initial.health_score, context.dry_run,
        )

        artifacts: List[str] = []
        if not context.dry_run and not context.skip_backup:
            backup = await self.analyzer.create_backup([module_id])
            artifacts.append(str(backup))

        steps: List[RecoveryStepResult] = []
        timed_out = False
        for step in STRATEGY_STEPS[strategy]:
            elapsed_ms = (time.monotonic() - start) * 1000
            if elapsed_ms > context.timeout_ms:
                timed_out = True
                break
            result = await self._run_with_attempts(step, module_id, module_path, strategy, context)
            steps.append(result)
            artifacts.extend(result.artifacts)

        if context.dry_run:
            nominal = sum(s.health_improvement for s in steps)
            final_score = min(100, initial.health_score + nominal)
        else:
            final_score = (await self.analyzer.analyze_module(module_id)).health_score

        errors = [e for s in steps for e in s.errors]
        if timed_out:
            errors.append(f"Recovery timed out after {context.timeout_ms}ms")
        improvement = final_score - initial.health_score
        success = final_score >= context.target_health_score and not errors
        if success:
            outcome = RecoveryOutcome.COMPLETED
        elif improvement > 0:
            outcome = RecoveryOutcome.PARTIAL
        else:
            outcome = RecoveryOutcome.FAILED

        result = RecoveryResult(
            module_id=module_id,
            strategy=strategy,
            success=success,
            phases=steps,
            initial_health_score=initial.health_score,
            final_health_score=final_score,
            health_improvement=improvement,
            execution_time_ms=int((time.monotonic() - start) * 1000),
            total_errors=len(errors),
            artifacts=artifacts,
            outcome=outcome,
            start_time=started_at,
            end_time=utc_now(),
        )
        logger.info(
            "Recovery of %s finished: %s (%d -> %d)",
            module_id, outcome.value, initial.health_score, final_score,
        )
        return result

    async def _run_with_attempts(
        self,
        step: RecoveryStep,
        module_id: str,
        module_path: Path,
        strategy: RecoveryStrategy,
        context: RecoveryContext,
    ) -> RecoveryStepResult:
        result = RecoveryStepResult(phase=step.value, success=False)
        for attempt in range(1, context.max_attempts + 1):
            step_start = time.monotonic()
            if context.dry_run:
                result = RecoveryStepResult(
                    phase=step.value,
                    success=True,
                    output=f"[dry-run] {step.value} for {module_id}",
                )
            else:
                result = await self._run_step(step, module_id, module_path, strategy, context)
            result.attempts = attempt
            result.duration_ms = int((time.monotonic() - step_start) * 1000)
            if result.success:
                result.health_improvement = STEP_HEALTH_IMPROVEMENT[step]
                return result
            logger.debug("Step %s for %s failed (attempt %d)", step.value, module_id, attempt)
        return result

    async def _run_step(
        self,
        step: RecoveryStep,
        module_id: str,
        module_path: Path,
        strategy: RecoveryStrategy,
        context: RecoveryContext,
    ) -> RecoveryStepResult:
        if step == RecoveryStep.CONFIGURATION_REPAIR:
            return await asyncio.to_thread(
                self._repair_configuration, module_id, module_path,
                strategy == RecoveryStrategy.RESET,
            )
        if step == RecoveryStep.CODE_REPAIR:
            return await asyncio.to_thread(self._repair_code, module_path)
        if step == RecoveryStep.VALIDATION:
            state = await self.analyzer.analyze_module(module_id)
            errors = [e.message for e in state.critical_errors]
            return RecoveryStepResult(
                phase=step.value,
                success=not errors,
                output=f"Health score {state.health_score}",
                errors=errors,
            )

        if not module_path.is_dir():
            return RecoveryStepResult(
                phase=step.value, success=False,
                errors=[f"Module directory not found: {module_path}"],
            )
        command = STEP_COMMANDS[step]
        completed = await self.command_runner.run(
            command, module_path, timeout_s=context.timeout_ms / 1000,
        )
        return RecoveryStepResult(
            phase=step.value,
            success=completed.ok,
            errors_resolved=1 if completed.ok else 0,
            output=completed.stdout[-2000:],
            errors=[] if completed.ok else [completed.stderr[-2000:] or f"{' '.join(command)} failed"],
        )

    def _repair_configuration(
        self, module_id: str, module_path: Path, reset: bool,
    ) -> RecoveryStepResult:
        module_path.mkdir(parents=True, exist_ok=True)
        written: List[str] = []

        manifest_path = module_path / "package.json"
        manifest = _load_json_object(manifest_path)
        if manifest is None or reset or not manifest.get("name") or not manifest.get("version"):
            base = manifest or {}
            repaired = {
                **default_manifest(module_id),
                **{k: v for k, v in base.items() if k in _PRESERVED_MANIFEST_KEYS},
            }
            for key in ("name", "version"):
                if not repaired.get(key):
                    repaired[key] = default_manifest(module_id)[key]
            _write_json(manifest_path, repaired)
            written.append(str(manifest_path))

        tsconfig_path = module_path / "tsconfig.json"
        tsconfig = _load_json_object(tsconfig_path)
        if tsconfig is None or reset or "compilerOptions" not in tsconfig:
            _write_json(tsconfig_path, DEFAULT_TSCONFIG)
            written.append(str(tsconfig_path))

        return RecoveryStepResult(
            phase=RecoveryStep.CONFIGURATION_REPAIR.value,
            success=True,
            errors_resolved=len(written),
            output=f"Wrote {len(written)} configuration file(s)",
            artifacts=written,
        )

    def _repair_code(self, module_path: Path) -> RecoveryStepResult:
        index_path = module_path / "src" / "index.ts"
        if index_path.exists():
            return RecoveryStepResult(
                phase=RecoveryStep.CODE_REPAIR.value, success=True,
                output="Entry point present",
            )
        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_text("export {};\n", encoding="utf-8")
        return RecoveryStepResult(
            phase=RecoveryStep.CODE_REPAIR.value,
            success=True,
            errors_resolved=1,
            output="Scaffolded src/index.ts",
            artifacts=[str(index_path)],
        )


_PRESERVED_MANIFEST_KEYS = (
    "name", "version", "dependencies", "devDependencies", "peerDependencies",
)


def default_manifest(module_id: str) -> Dict[str, Any]:
    return {
        "name": f"@workspace/{module_id}",
        "version": "1.0.0",
        "main": "dist/index.js",
        "types": "dist/index.d.ts",
        "scripts": {"build": "tsc", "test": "jest"},
    }


def _load_json_object(path: Path) -> Optional[Dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    temp_path = path.with_suffix(".json.tmp")
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    temp_path.replace(path)


# ── Multi-module recovery ─────────────────────────────────────────────

def order_for_recovery(module_ids: Iterable[str]) -> List[str]:
    """Order modules core -> foundation -> business, known order within a layer."""
    def key(module_id: str) -> tuple:
        position = KNOWN_MODULES.index(module_id) if module_id in KNOWN_MODULES else len(KNOWN_MODULES)
        return (ModuleCategory.for_module(module_id).rank, position)
    return sorted(module_ids, key=key)


async def recover_modules(
    recovery: ModuleRecoveryProtocol,
    module_ids: Iterable[str],
    strategy: RecoveryStrategy,
    context: RecoveryContext,
    parallel: bool = False,
    max_concurrency: int = 4,
    fail_fast: bool = False,
) -> Dict[str, RecoveryResult]:
    """Recover several modules, lower layers first.

    Parallel mode runs batches of ``max_concurrency`` modules and waits
    for every module of a batch before starting the next. With
    ``fail_fast`` no further module (or batch) starts after a failure.
    """
    ordered = order_for_recovery(module_ids)
    results: Dict[str, RecoveryResult] = {}

    if not parallel:
        for module_id in ordered:
            result = await _recover_one(recovery, module_id, strategy, context)
            results[module_id] = result
            if fail_fast and not result.success:
                break
        return results

    size = max(1, max_concurrency)
    for i in range(0, len(ordered), size):
        batch = ordered[i:i + size]
        batch_results = await asyncio.gather(
            *(_recover_one(recovery, m, strategy, context) for m in batch)
        )
        results.update(zip(batch, batch_results))
        if fail_fast and any(not r.success for r in batch_results):
            break
    return results


async def _recover_one(
    recovery: ModuleRecoveryProtocol,
    module_id: str,
    strategy: RecoveryStrategy,
    context: RecoveryContext,
) -> RecoveryResult:
    try:
        return await recovery.execute_recovery(module_id, strategy, context)
    except Exception as e:
        logger.warning("Recovery of module %s raised: %s", module_id, e)
        return RecoveryResult(
            module_id=module_id,
            strategy=RecoveryStrategy(strategy),
            success=False,
            total_errors=1,
            error=str(e),
        )
