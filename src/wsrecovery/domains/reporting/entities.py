"""Reporting Domain Entities.

Each report section kind has its own payload type. ``ReportSection`` is
the closed union of them; ``to_dict()`` tags every section with its kind.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Union

from wsrecovery.domains.analytics.entities import (
    ModuleRecoveryProfile,
    RecoveryOperationRecord,
    SystemRecoveryReport,
)
from wsrecovery.domains.health.aggregates import WorkspaceHealth
from wsrecovery.domains.health.entities import ConfigurationReport

from .value_objects import MetricStatus, MetricTrend, SectionKind


@dataclass(frozen=True)
class KeyMetric:
    name: str
    value: Union[str, int, float]
    trend: MetricTrend = MetricTrend.STABLE
    status: MetricStatus = MetricStatus.GOOD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "trend": self.trend.value,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class SummarySection:
    kind: ClassVar[SectionKind] = SectionKind.SUMMARY
    section_id: str
    title: str
    overview: str
    key_points: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {
                "overview": self.overview,
                "key_points": list(self.key_points),
                "metrics": dict(self.metrics),
            },
        }


@dataclass(frozen=True)
class MetricItem:
    label: str
    value: Union[str, int, float]
    status: MetricStatus

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.value, "status": self.status.value}


@dataclass(frozen=True)
class MetricsSection:
    kind: ClassVar[SectionKind] = SectionKind.METRICS
    section_id: str
    title: str
    items: List[MetricItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {"metrics": [m.to_dict() for m in self.items], "layout": "grid"},
        }


@dataclass(frozen=True)
class ChartSeries:
    label: str
    values: List[Optional[float]]

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "data": list(self.values)}


@dataclass(frozen=True)
class Chart:
    chart_id: str
    title: str
    chart_type: str
    labels: List[str]
    series: List[ChartSeries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.chart_id,
            "title": self.title,
            "type": self.chart_type,
            "labels": list(self.labels),
            "datasets": [s.to_dict() for s in self.series],
        }


@dataclass(frozen=True)
class ChartSection:
    kind: ClassVar[SectionKind] = SectionKind.CHART
    section_id: str
    title: str
    charts: List[Chart] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {"charts": [c.to_dict() for c in self.charts]},
        }


@dataclass(frozen=True)
class Table:
    table_id: str
    title: str
    headers: List[str]
    rows: List[List[Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.table_id,
            "title": self.title,
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
        }


@dataclass(frozen=True)
class TableSection:
    kind: ClassVar[SectionKind] = SectionKind.TABLE
    section_id: str
    title: str
    tables: List[Table] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {"tables": [t.to_dict() for t in self.tables]},
        }


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: str
    title: str
    description: str
    outcome: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "title": self.title,
            "description": self.description,
            "type": self.outcome,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class TimelineSection:
    kind: ClassVar[SectionKind] = SectionKind.TIMELINE
    section_id: str
    title: str
    events: List[TimelineEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {"events": [e.to_dict() for e in self.events], "sort_order": "desc"},
        }


@dataclass(frozen=True)
class HeatmapCell:
    x: str
    y: str
    value: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "value": self.value, "count": self.count}


@dataclass(frozen=True)
class HeatmapSection:
    kind: ClassVar[SectionKind] = SectionKind.HEATMAP
    section_id: str
    title: str
    cells: List[HeatmapCell] = field(default_factory=list)
    x_title: str = "Recovery Strategy"
    y_title: str = "Module"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {
                "data": [c.to_dict() for c in self.cells],
                "axes": {"x": {"title": self.x_title}, "y": {"title": self.y_title}},
            },
        }


@dataclass(frozen=True)
class TextSection:
    kind: ClassVar[SectionKind] = SectionKind.TEXT
    section_id: str
    title: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.section_id,
            "title": self.title,
            "type": self.kind.value,
            "content": {"text": self.text, "format": "markdown"},
        }


ReportSection = Union[
    SummarySection,
    MetricsSection,
    ChartSection,
    TableSection,
    TimelineSection,
    HeatmapSection,
    TextSection,
]


@dataclass(frozen=True)
class ExecutiveSummary:
    key_metrics: List[KeyMetric] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key_metrics": [m.to_dict() for m in self.key_metrics],
            "highlights": list(self.highlights),
            "concerns": list(self.concerns),
            "recommendations": list(self.recommendations),
        }


@dataclass
class ReportInputs:
    """Structured data a report is assembled from. Every source is optional."""
    workspace_health: Optional[WorkspaceHealth] = None
    system_report: Optional[SystemRecoveryReport] = None
    operations: List[RecoveryOperationRecord] = field(default_factory=list)
    validation: Optional[ConfigurationReport] = None
    module_profiles: List[ModuleRecoveryProfile] = field(default_factory=list)

    def sources(self) -> List[str]:
        used = []
        if self.workspace_health is not None:
            used.append("health")
        if self.system_report is not None:
            used.append("analytics")
        if self.operations:
            used.append("operations")
        if self.validation is not None:
            used.append("validation")
        if self.module_profiles:
            used.append("profiles")
        return used


@dataclass
class ReportData:
    """Payload handed to the reporting collaborator."""
    report_id: str
    template_id: str
    title: str
    subtitle: str
    generated_at: datetime
    timeframe: Dict[str, Optional[str]]
    summary: ExecutiveSummary
    sections: List[ReportSection] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.report_id,
            "template_id": self.template_id,
            "title": self.title,
            "subtitle": self.subtitle,
            "generated_at": self.generated_at.isoformat(),
            "timeframe": dict(self.timeframe),
            "summary": self.summary.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "metadata": dict(self.metadata),
        }
