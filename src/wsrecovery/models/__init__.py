"""Data models for the recovery engine."""
from .config_models import ENV_PREFIX, RecoveryConfig

__all__ = ["ENV_PREFIX", "RecoveryConfig"]
