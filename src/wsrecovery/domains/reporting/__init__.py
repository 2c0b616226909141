"""Reporting Bounded Context.

Typed report sections and the payload builder whose output the
reporting collaborator renders.
"""
from .value_objects import (
    REPORT_TEMPLATES,
    MetricStatus,
    MetricTrend,
    ReportTemplate,
    SectionKind,
    SectionSpec,
)
from .entities import (
    Chart,
    ChartSection,
    ChartSeries,
    ExecutiveSummary,
    HeatmapCell,
    HeatmapSection,
    KeyMetric,
    MetricItem,
    MetricsSection,
    ReportData,
    ReportInputs,
    ReportSection,
    SummarySection,
    Table,
    TableSection,
    TextSection,
    TimelineEvent,
    TimelineSection,
)
from .services import ReportBuilder, ReportRendererProtocol

__all__ = [
    # Value objects
    "REPORT_TEMPLATES",
    "MetricStatus",
    "MetricTrend",
    "ReportTemplate",
    "SectionKind",
    "SectionSpec",
    # Entities
    "Chart",
    "ChartSection",
    "ChartSeries",
    "ExecutiveSummary",
    "HeatmapCell",
    "HeatmapSection",
    "KeyMetric",
    "MetricItem",
    "MetricsSection",
    "ReportData",
    "ReportInputs",
    "ReportSection",
    "SummarySection",
    "Table",
    "TableSection",
    "TextSection",
    "TimelineEvent",
    "TimelineSection",
    # Services
    "ReportBuilder",
    "ReportRendererProtocol",
]
