"""Configuration data models."""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

import yaml

from wsrecovery.domains.module_recovery.value_objects import RecoveryContext
from wsrecovery.domains.phase_execution.value_objects import ExecutionOptions

logger = logging.getLogger(__name__)

ENV_PREFIX = "WSRECOVERY_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RecoveryConfig:
    """Centralized configuration for the recovery engine."""

    # Workspace layout
    WORKSPACE: str = "."
    ANALYTICS_DIR: str = "analytics/recovery"  # relative to WORKSPACE
    REPORTS_DIR: str = "reports"  # relative to WORKSPACE

    # Phase execution
    MAX_CONCURRENCY: int = 4
    PHASE_TIMEOUT_MS: Optional[int] = None  # no limit
    DRY_RUN: bool = False

    # Module recovery
    TARGET_HEALTH_SCORE: int = 85
    MAX_ATTEMPTS: int = 1
    STRATEGY_TIMEOUT_MS: int = 300000  # milliseconds per module recovery

    # Ambient
    LOG_LEVEL: str = "INFO"
    PERSIST_ANALYTICS: bool = True

    @classmethod
    def _coerce(cls, key: str, value: Any) -> Any:
        default = getattr(cls, key)
        if value is None:
            return None
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"{key} expects a boolean, got {value!r}")
        if isinstance(default, int) or key == "PHASE_TIMEOUT_MS":
            return int(value)
        if key == "LOG_LEVEL":
            return str(value).upper()
        return str(value)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'RecoveryConfig':
        """Create configuration from dictionary. Keys are case-insensitive; unknown keys are ignored."""
        instance = cls()
        names = set(cls.field_names())
        for key, value in config.items():
            name = str(key).upper()
            if name in names:
                setattr(instance, name, cls._coerce(name, value))
        return instance

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'RecoveryConfig':
        """Create configuration from ``WSRECOVERY_*`` environment variables."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[ENV_PREFIX + name]
            for name in cls.field_names()
            if ENV_PREFIX + name in environ
        }
        return cls.from_dict(values)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'RecoveryConfig':
        """Load configuration from a YAML file.

        String values of the form ``${VAR}`` are replaced by the
        environment variable; unset variables leave the default in place.
        """
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{yaml_path} must contain a mapping")

        resolved: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                if env_var not in os.environ:
                    logger.debug("Environment variable %s not set; keeping default for %s", env_var, key)
                    continue
                value = os.environ[env_var]
            resolved[key] = value
        return cls.from_dict(resolved)

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary."""
        return {
            key: value for key, value in self.__dict__.items()
            if not key.startswith('_')
        }

    def update(self, **kwargs) -> None:
        """Update configuration values."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, self._coerce(key, value))
            else:
                raise ValueError(f"Unknown configuration key: {key}")

    def validate(self) -> List[str]:
        """Validate configuration values and return any errors."""
        errors = []

        if self.MAX_CONCURRENCY < 1:
            errors.append("MAX_CONCURRENCY must be at least 1")

        if self.PHASE_TIMEOUT_MS is not None and self.PHASE_TIMEOUT_MS <= 0:
            errors.append("PHASE_TIMEOUT_MS must be positive")

        if not 0 <= self.TARGET_HEALTH_SCORE <= 100:
            errors.append("TARGET_HEALTH_SCORE must be between 0 and 100")

        if not 1 <= self.MAX_ATTEMPTS <= 10:
            errors.append("MAX_ATTEMPTS must be between 1 and 10")

        if self.STRATEGY_TIMEOUT_MS <= 0:
            errors.append("STRATEGY_TIMEOUT_MS must be positive")

        if self.LOG_LEVEL not in _VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}")

        return errors

    def recovery_context(self, **overrides: Any) -> RecoveryContext:
        """Build the per-invocation RecoveryContext from these defaults."""
        values: Dict[str, Any] = {
            "target_health_score": self.TARGET_HEALTH_SCORE,
            "max_attempts": self.MAX_ATTEMPTS,
            "timeout_ms": self.STRATEGY_TIMEOUT_MS,
            "dry_run": self.DRY_RUN,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RecoveryContext(**values)

    def execution_options(self, **overrides: Any) -> ExecutionOptions:
        """Build phase ExecutionOptions from these defaults."""
        values: Dict[str, Any] = {
            "max_concurrency": self.MAX_CONCURRENCY,
            "timeout_ms": self.PHASE_TIMEOUT_MS,
            "dry_run": self.DRY_RUN,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ExecutionOptions(**values)
