"""Dependency Injection Container for the wsrecovery domains.

This container wires together the bounded contexts for one workspace:
- Health Context: workspace analyzer and module validator
- Module Recovery Context: filesystem recovery collaborator
- Phase Execution Context: per-session phase executors
- Analytics Context: operation log backed by the document store
- Reporting Context: report builder and JSON report writer

Usage:
    from wsrecovery.container import get_container

    container = get_container(RecoveryConfig(WORKSPACE="/path/to/ws"))
    analyzer = container.analyzer
    analytics = container.analytics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

from wsrecovery.models.config_models import RecoveryConfig

if TYPE_CHECKING:
    from wsrecovery.domains.analytics import RecoveryAnalytics
    from wsrecovery.domains.health import ModuleValidator, WorkspaceAnalyzer
    from wsrecovery.domains.module_recovery import CommandRunner, FilesystemModuleRecovery
    from wsrecovery.domains.phase_execution import PhaseExecutor
    from wsrecovery.domains.reporting import ReportBuilder
    from wsrecovery.persistence import DocumentStore, JsonReportWriter

logger = logging.getLogger(__name__)

# One container per resolved workspace path
_containers: Dict[str, "ServiceContainer"] = {}


@dataclass
class ServiceContainer:
    """Per-workspace dependency injection container.

    Collaborators are created lazily on first access and shared by every
    caller holding this container. Nothing here is shared between
    workspaces.

    Attributes:
        config: Configuration the collaborators are built from

    Session-scoped services (keyed by session_id):
        - Phase executors (each owns one RecoverySession)
    """

    config: RecoveryConfig = field(default_factory=RecoveryConfig)

    # Shared services
    _analyzer: Optional["WorkspaceAnalyzer"] = field(default=None, repr=False)
    _validator: Optional["ModuleValidator"] = field(default=None, repr=False)
    _command_runner: Optional["CommandRunner"] = field(default=None, repr=False)
    _module_recovery: Optional["FilesystemModuleRecovery"] = field(
        default=None, repr=False
    )
    _document_store: Optional["DocumentStore"] = field(default=None, repr=False)
    _analytics: Optional["RecoveryAnalytics"] = field(default=None, repr=False)
    _report_builder: Optional["ReportBuilder"] = field(default=None, repr=False)
    _report_writer: Optional["JsonReportWriter"] = field(default=None, repr=False)

    # Session-scoped registries
    _executors: Dict[str, "PhaseExecutor"] = field(default_factory=dict, repr=False)

    @property
    def workspace_path(self) -> Path:
        return Path(self.config.WORKSPACE).expanduser().resolve()

    @property
    def analyzer(self) -> "WorkspaceAnalyzer":
        """Get the workspace analyzer."""
        if self._analyzer is None:
            from wsrecovery.domains.health import WorkspaceAnalyzer
            self._analyzer = WorkspaceAnalyzer(self.workspace_path)
        return self._analyzer

    @property
    def validator(self) -> "ModuleValidator":
        """Get the module validation collaborator."""
        if self._validator is None:
            from wsrecovery.domains.health import ModuleValidator
            self._validator = ModuleValidator(self.analyzer)
        return self._validator

    @property
    def command_runner(self) -> "CommandRunner":
        if self._command_runner is None:
            from wsrecovery.domains.module_recovery import CommandRunner
            self._command_runner = CommandRunner()
        return self._command_runner

    @property
    def module_recovery(self) -> "FilesystemModuleRecovery":
        """Get the module-recovery collaborator."""
        if self._module_recovery is None:
            from wsrecovery.domains.module_recovery import FilesystemModuleRecovery
            self._module_recovery = FilesystemModuleRecovery(
                analyzer=self.analyzer,
                workspace_path=self.workspace_path,
                command_runner=self.command_runner,
            )
        return self._module_recovery

    @property
    def document_store(self) -> Optional["DocumentStore"]:
        """Get the analytics document store, or None when persistence is off."""
        if not self.config.PERSIST_ANALYTICS:
            return None
        if self._document_store is None:
            from wsrecovery.persistence import DocumentStore
            self._document_store = DocumentStore(
                self.workspace_path / self.config.ANALYTICS_DIR
            )
        return self._document_store

    @property
    def analytics(self) -> "RecoveryAnalytics":
        """Get the recovery analytics, loading any persisted operations."""
        if self._analytics is None:
            from wsrecovery.domains.analytics import RecoveryAnalytics
            self._analytics = RecoveryAnalytics(store=self.document_store)
            self._analytics.load()
        return self._analytics

    @property
    def report_builder(self) -> "ReportBuilder":
        if self._report_builder is None:
            from wsrecovery.domains.reporting import ReportBuilder
            self._report_builder = ReportBuilder()
        return self._report_builder

    @property
    def report_writer(self) -> "JsonReportWriter":
        """Get the default reporting collaborator."""
        if self._report_writer is None:
            from wsrecovery.persistence import JsonReportWriter
            self._report_writer = JsonReportWriter(
                self.workspace_path / self.config.REPORTS_DIR
            )
        return self._report_writer

    def register_executor(self, executor: "PhaseExecutor") -> None:
        """Track the executor that owns a session.

        Args:
            executor: Executor whose session id becomes the key
        """
        self._executors[executor.session.session_id] = executor

    def get_executor(self, session_id: str) -> Optional["PhaseExecutor"]:
        """Get the executor for a session, or None when unknown."""
        return self._executors.get(session_id)

    def find_executor_for_execution(self, execution_id: str) -> Optional["PhaseExecutor"]:
        """Find the executor that started a given phase execution."""
        for executor in self._executors.values():
            if executor.owns_execution(execution_id):
                return executor
        return None

    def session_ids(self) -> List[str]:
        return list(self._executors)

    def clear_session(self, session_id: str) -> None:
        """Forget a session and its executor.

        Args:
            session_id: The session to clear
        """
        self._executors.pop(session_id, None)
        logger.debug("Cleared container data for session %s", session_id)


def get_container(config: Optional[RecoveryConfig] = None) -> ServiceContainer:
    """Get the service container for a workspace.

    Args:
        config: Configuration naming the workspace; defaults to the
            environment (``WSRECOVERY_*``)

    Returns:
        The ServiceContainer for the resolved workspace path
    """
    config = config or RecoveryConfig.from_env()
    key = str(Path(config.WORKSPACE).expanduser().resolve())
    container = _containers.get(key)
    if container is None:
        container = ServiceContainer(config=config)
        _containers[key] = container
        logger.debug("Created service container for workspace %s", key)
    return container


def reset_container() -> None:
    """Reset all containers (for testing).

    Clears the registry so a fresh container is created on the next
    get_container() call.
    """
    _containers.clear()
