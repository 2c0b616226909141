"""Reporting Domain Value Objects."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple


class SectionKind(str, enum.Enum):
    SUMMARY = "summary"
    CHART = "chart"
    TABLE = "table"
    METRICS = "metrics"
    TIMELINE = "timeline"
    HEATMAP = "heatmap"
    TEXT = "text"


class MetricStatus(str, enum.Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def for_health(cls, score: int) -> MetricStatus:
        if score >= 80:
            return cls.GOOD
        if score >= 60:
            return cls.WARNING
        return cls.CRITICAL


class MetricTrend(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True)
class SectionSpec:
    """Placement of one section in a report template."""
    section_id: str
    title: str
    kind: SectionKind
    order: int
    text: str = ""


@dataclass(frozen=True)
class ReportTemplate:
    template_id: str
    name: str
    description: str
    sections: Tuple[SectionSpec, ...]

    def ordered_sections(self) -> Tuple[SectionSpec, ...]:
        return tuple(sorted(self.sections, key=lambda s: s.order))


REPORT_TEMPLATES: Dict[str, ReportTemplate] = {
    "comprehensive": ReportTemplate(
        template_id="comprehensive",
        name="Comprehensive Recovery Report",
        description="Complete system recovery and health analysis",
        sections=(
            SectionSpec("summary", "Executive Summary", SectionKind.SUMMARY, 1),
            SectionSpec("metrics", "Key Metrics", SectionKind.METRICS, 2),
            SectionSpec("charts", "Performance Charts", SectionKind.CHART, 3),
            SectionSpec("profiles", "Module Profiles", SectionKind.TABLE, 4),
            SectionSpec("timeline", "Recovery Timeline", SectionKind.TIMELINE, 5),
            SectionSpec("heatmap", "Success Rate Heatmap", SectionKind.HEATMAP, 6),
        ),
    ),
    "executive": ReportTemplate(
        template_id="executive",
        name="Executive Summary Report",
        description="High-level overview",
        sections=(
            SectionSpec("summary", "Executive Summary", SectionKind.SUMMARY, 1),
            SectionSpec("metrics", "Key Performance Indicators", SectionKind.METRICS, 2),
            SectionSpec("charts", "Trends Overview", SectionKind.CHART, 3),
            SectionSpec(
                "notes", "Notes", SectionKind.TEXT, 4,
                text="{total_operations} recovery operations recorded, "
                     "{success_rate}% succeeded.",
            ),
        ),
    ),
}

TIMELINE_MAX_EVENTS = 50
RECENT_OPERATIONS_ROWS = 20
