"""Analytics Domain Value Objects."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from wsrecovery.domains.shared.kernel import RecoveryStrategy, utc_now


class InsightType(str, enum.Enum):
    SUCCESS_FACTOR = "success_factor"
    FAILURE_CAUSE = "failure_cause"
    OPTIMIZATION = "optimization"
    RISK = "risk"
    TREND = "trend"


class InsightSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class InsightThresholds:
    """Fixed thresholds for per-operation and system insights."""
    HIGH_IMPROVEMENT = 50
    FAST_RECOVERY_MS = 30000
    SLOW_RECOVERY_MS = 120000
    SYSTEM_SUCCESS_RATE = 0.7


class RiskThresholds:
    """Fixed thresholds for module risk factors."""
    FAILURE_RATE = 0.3
    RESET_RATE = 0.2
    SLOW_OPERATION_MS = 120000
    SLOW_RATE = 0.5
    LOW_IMPROVEMENT = 20
    LOW_IMPROVEMENT_RATE = 0.4
    RECENT_WINDOW = timedelta(days=7)
    RECENT_MIN_OPERATIONS = 3
    RECENT_SUCCESS_RATE = 0.6


RISK_HIGH_FAILURE_RATE = "High failure rate (>30%)"
RISK_FREQUENT_RESETS = "Frequent full resets required"
RISK_SLOW_RECOVERY = "Consistently slow recovery times"
RISK_POOR_IMPROVEMENT = "Poor health improvement rates"
RISK_DECLINING_SUCCESS = "Declining success rate trend"


class PredictionDefaults:
    """Predictions used when no history exists for a module/strategy pair."""
    SUCCESS_RATE = 0.5
    DURATION_MS = 60000
    HEALTH_IMPROVEMENT = 30
    FULL_CONFIDENCE_OPERATIONS = 10


class ReportThresholds:
    HIGH_RISK_FACTORS = 2
    SLOW_MODULE_MS = 60000
    UNRELIABLE_SUCCESS_RATE = 0.7
    FREQUENT_RESETS = 3


# Resource utilisation is not instrumented; this neutral value is reported
# unless a probe is supplied.
NEUTRAL_RESOURCE_UTILIZATION = 0.5

STRATEGY_PROS: Dict[RecoveryStrategy, Tuple[str, ...]] = {
    RecoveryStrategy.REPAIR: (
        "Fast execution", "Minimal disruption", "Preserves existing data",
    ),
    RecoveryStrategy.REBUILD: (
        "Thorough recovery", "Addresses root causes",
        "Good balance of speed and completeness",
    ),
    RecoveryStrategy.RESET: (
        "Complete clean slate", "Highest success rate", "Eliminates accumulated issues",
    ),
}

STRATEGY_CONS: Dict[RecoveryStrategy, Tuple[str, ...]] = {
    RecoveryStrategy.REPAIR: (
        "May not address root causes", "Lower success rate for complex issues",
    ),
    RecoveryStrategy.REBUILD: (
        "Longer execution time", "More resource intensive",
    ),
    RecoveryStrategy.RESET: (
        "Data loss risk", "Longest execution time", "Complete reconfiguration needed",
    ),
}

_TIMEFRAME_SPANS: Dict[str, Optional[timedelta]] = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "all": None,
}


@dataclass(frozen=True)
class Timeframe:
    """Inclusive reporting window; ``start=None`` means unbounded."""
    end: datetime
    start: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start is not None and self.start > self.end:
            raise ValueError("Timeframe start must not be after its end")

    @classmethod
    def named(cls, name: str, now: Optional[datetime] = None) -> Timeframe:
        """Build a window ending ``now``: ``day``, ``week``, ``month`` or ``all``."""
        key = name.strip().lower()
        if key not in _TIMEFRAME_SPANS:
            raise ValueError(
                f"Unknown timeframe '{name}'. Expected one of {sorted(_TIMEFRAME_SPANS)}"
            )
        now = now or utc_now()
        span = _TIMEFRAME_SPANS[key]
        return cls(end=now, start=now - span if span is not None else None)

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        return moment <= self.end

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat(),
        }
