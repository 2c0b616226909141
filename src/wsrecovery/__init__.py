"""Workspace Recovery MCP Server - health analysis and phased module recovery."""

from wsrecovery.service import ModuleRecoveryRun, RecoveryService  # noqa: F401

__all__ = ["ModuleRecoveryRun", "RecoveryService"]

__version__ = "0.1.0"
