"""Reporting Domain Services.

``ReportBuilder`` assembles the structured payload a reporting
collaborator consumes: an executive summary plus the typed sections of a
template. Rendering and storage belong to the collaborator.
"""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from wsrecovery.domains.analytics.entities import RecoveryOperationRecord
from wsrecovery.domains.analytics.value_objects import Timeframe
from wsrecovery.domains.health.value_objects import HealthStatus
from wsrecovery.domains.shared.errors import ReportTemplateNotFoundError
from wsrecovery.domains.shared.kernel import KNOWN_MODULES, RecoveryStrategy, utc_now

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
from .value_objects import (
    RECENT_OPERATIONS_ROWS,
    REPORT_TEMPLATES,
    TIMELINE_MAX_EVENTS,
    MetricStatus,
    MetricTrend,
    ReportTemplate,
    SectionKind,
    SectionSpec,
)

logger = logging.getLogger(__name__)


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class ReportRendererProtocol(Protocol):
    """Protocol for the reporting collaborator; returns the written file."""
    def render(self, report: ReportData) -> Path: ...


def _rate(successful: int, total: int) -> float:
    return successful / total if total else 0.0


def _unique(items: Sequence[str]) -> List[str]:
    return list(OrderedDict.fromkeys(items))


# ── ReportBuilder ─────────────────────────────────────────────────────

class ReportBuilder:
    """Builds report payloads from workspace health and analytics data."""

    def __init__(
        self,
        templates: Optional[Dict[str, ReportTemplate]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._templates = dict(templates or REPORT_TEMPLATES)
        self._clock = clock
        self._section_builders: Dict[SectionKind, Callable[[SectionSpec, ReportInputs], ReportSection]] = {
            SectionKind.SUMMARY: self._summary_section,
            SectionKind.METRICS: self._metrics_section,
            SectionKind.CHART: self._chart_section,
            SectionKind.TABLE: self._table_section,
            SectionKind.TIMELINE: self._timeline_section,
            SectionKind.HEATMAP: self._heatmap_section,
            SectionKind.TEXT: self._text_section,
        }

    @property
    def template_ids(self) -> List[str]:
        return list(self._templates)

    def build(
        self,
        template_id: str,
        inputs: ReportInputs,
        timeframe: Timeframe,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
    ) -> ReportData:
        """Assemble the payload for one report.

        Raises:
            ReportTemplateNotFoundError: If template_id is unknown
        """
        template = self._templates.get(template_id)
        if template is None:
            raise ReportTemplateNotFoundError(template_id)

        start = time.monotonic()
        now = self._clock()
        summary = self.build_summary(inputs)
        sections = [
            self._section_builders[spec.kind](spec, inputs)
            for spec in template.ordered_sections()
        ]
        report = ReportData(
            report_id=f"report-{template_id}-{int(now.timestamp() * 1000)}",
            template_id=template_id,
            title=title or template.name,
            subtitle=subtitle or f"Generated on {now.date().isoformat()}",
            generated_at=now,
            timeframe=timeframe.to_dict(),
            summary=summary,
            sections=sections,
            metadata={
                "data_sources_used": inputs.sources(),
                "report_template": template_id,
                "generation_time_ms": int((time.monotonic() - start) * 1000),
                "total_data_points": self._count_data_points(inputs),
                "filters": {},
                "export_format": "json",
            },
        )
        logger.debug("Built report %s with %d sections", report.report_id, len(sections))
        return report

    @staticmethod
    def _count_data_points(inputs: ReportInputs) -> int:
        count = len(inputs.operations) + len(inputs.module_profiles)
        if inputs.workspace_health is not None:
            count += len(inputs.workspace_health.module_states)
        if inputs.system_report is not None:
            count += sum(len(t.points) for t in inputs.system_report.trends)
        return count

    # ------------------------------------------------------------------
    # Executive summary
    # ------------------------------------------------------------------

    def build_summary(self, inputs: ReportInputs) -> ExecutiveSummary:
        metrics: List[KeyMetric] = []
        highlights: List[str] = []
        concerns: List[str] = []
        recommendations: List[str] = []

        report = inputs.system_report
        if report is not None:
            s = report.summary
            rate = _rate(s.successful_operations, s.total_operations)
            metrics.append(KeyMetric(
                "Recovery Success Rate", f"{rate * 100:.1f}%",
                status=MetricStatus.GOOD if rate > 0.8 else MetricStatus.WARNING,
            ))
            metrics.append(KeyMetric(
                "Average Recovery Time", f"{s.average_duration_ms / 1000:.1f}s",
                status=MetricStatus.GOOD if s.average_duration_ms < 60000 else MetricStatus.WARNING,
            ))
            metrics.append(KeyMetric("Modules Recovered", s.modules_recovered, trend=MetricTrend.UP))

            if s.successful_operations > 0:
                highlights.append(f"Successfully recovered {s.modules_recovered} modules")
            fastest = report.performance_metrics.get("fastest_recovery", {})
            if fastest.get("module_id") and fastest.get("duration_ms", 0) < 30000:
                highlights.append(
                    f"Fastest recovery: {fastest['module_id']} in "
                    f"{fastest['duration_ms'] / 1000:.1f}s"
                )
            if s.failed_operations > s.successful_operations * 0.3:
                concerns.append(f"High failure rate: {s.failed_operations} failed operations")
            least = report.performance_metrics.get("least_reliable", {})
            if least.get("module_id") and least.get("success_rate", 0.0) < 0.5:
                concerns.append(
                    f"Low reliability in {least['module_id']}: "
                    f"{least['success_rate'] * 100:.1f}% success rate"
                )
            recommendations.extend(report.recommendations)

        health = inputs.workspace_health
        if health is not None:
            score = health.overall_health_score
            needing = health.modules_needing_recovery
            metrics.append(KeyMetric(
                "Overall System Health", f"{score}/100",
                status=MetricStatus.GOOD if score > 80
                else MetricStatus.WARNING if score > 60 else MetricStatus.CRITICAL,
            ))
            metrics.append(KeyMetric(
                "Modules Needing Recovery", len(needing), trend=MetricTrend.DOWN,
                status=MetricStatus.GOOD if not needing
                else MetricStatus.WARNING if len(needing) < 5 else MetricStatus.CRITICAL,
            ))
            states = list(health.module_states.values())
            healthy = sum(1 for st in states if st.status == HealthStatus.HEALTHY)
            critical = sum(
                1 for st in states if st.status in (HealthStatus.CRITICAL, HealthStatus.FAILED)
            )
            if states and healthy > len(states) * 0.8:
                highlights.append(f"{healthy}/{len(states)} modules are healthy")
            if critical:
                concerns.append(f"{critical} modules in critical state")
            recommendations.extend(r.description for r in health.recommendations)

        validation = inputs.validation
        if validation is not None:
            metrics.append(KeyMetric(
                "Configuration Errors", len(validation.errors),
                status=MetricStatus.GOOD if validation.valid else MetricStatus.CRITICAL,
            ))
            metrics.append(KeyMetric(
                "Configuration Warnings", len(validation.warnings),
                status=MetricStatus.GOOD if not validation.warnings else MetricStatus.WARNING,
            ))
            if validation.valid:
                highlights.append("No critical configuration issues found")
            else:
                concerns.append(f"{len(validation.errors)} configuration errors detected")
            recommendations.extend(validation.recommendations)

        return ExecutiveSummary(
            key_metrics=metrics,
            highlights=highlights,
            concerns=concerns,
            recommendations=_unique(recommendations),
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _summary_section(self, spec: SectionSpec, inputs: ReportInputs) -> SummarySection:
        parts: List[str] = []
        metrics: Dict[str, object] = {}
        if inputs.workspace_health is not None:
            score = inputs.workspace_health.overall_health_score
            parts.append(f"Workspace health is {score}/100")
            metrics["overall_health_score"] = score
        if inputs.system_report is not None:
            s = inputs.system_report.summary
            parts.append(
                f"{s.total_operations} recovery operations, "
                f"{s.successful_operations} successful"
            )
            metrics.update(s.to_dict())
        summary = self.build_summary(inputs)
        return SummarySection(
            section_id=spec.section_id,
            title=spec.title,
            overview="; ".join(parts) or "No data available",
            key_points=summary.highlights + summary.concerns,
            metrics=metrics,
        )

    def _metrics_section(self, spec: SectionSpec, inputs: ReportInputs) -> MetricsSection:
        items: List[MetricItem] = []
        health = inputs.workspace_health
        if health is not None:
            by_status = health.module_summary()["by_status"]
            score = health.overall_health_score
            items.extend([
                MetricItem("Overall Health", f"{score}/100", MetricStatus.for_health(score)),
                MetricItem("Healthy Modules", by_status[HealthStatus.HEALTHY.value], MetricStatus.GOOD),
                MetricItem("Degraded Modules", by_status[HealthStatus.DEGRADED.value], MetricStatus.WARNING),
                MetricItem(
                    "Critical Modules",
                    by_status[HealthStatus.CRITICAL.value] + by_status[HealthStatus.FAILED.value],
                    MetricStatus.CRITICAL,
                ),
            ])
        report = inputs.system_report
        if report is not None:
            s = report.summary
            rate = _rate(s.successful_operations, s.total_operations)
            items.extend([
                MetricItem("Total Operations", s.total_operations, MetricStatus.GOOD),
                MetricItem(
                    "Success Rate", f"{rate * 100:.1f}%",
                    MetricStatus.GOOD if rate > 0.8 else MetricStatus.WARNING,
                ),
                MetricItem("Avg Recovery Time", f"{s.average_duration_ms / 1000:.1f}s", MetricStatus.GOOD),
                MetricItem("Total Health Improvement", s.total_health_improvement, MetricStatus.GOOD),
            ])
        return MetricsSection(section_id=spec.section_id, title=spec.title, items=items)

    def _chart_section(self, spec: SectionSpec, inputs: ReportInputs) -> ChartSection:
        charts: List[Chart] = []
        report = inputs.system_report
        if report is not None and report.trends:
            labels = sorted({p.date for t in report.trends for p in t.points})
            series = []
            for trend in report.trends:
                by_date = {p.date: p.success_rate * 100 for p in trend.points}
                series.append(ChartSeries(trend.module_id, [by_date.get(d) for d in labels]))
            charts.append(Chart(
                "recovery-success-trend", "Recovery Success Rate Trend", "line", labels, series,
            ))
        health = inputs.workspace_health
        if health is not None and health.module_states:
            labels = list(health.module_states)
            charts.append(Chart(
                "health-score-bar", "Module Health Scores", "bar", labels,
                [ChartSeries(
                    "Health Score",
                    [float(st.health_score) for st in health.module_states.values()],
                )],
            ))
        return ChartSection(section_id=spec.section_id, title=spec.title, charts=charts)

    def _table_section(self, spec: SectionSpec, inputs: ReportInputs) -> TableSection:
        tables: List[Table] = []
        if inputs.module_profiles:
            tables.append(Table(
                "module-profiles",
                "Module Recovery Profiles",
                ["Module", "Success Rate", "Avg Duration", "Health Improvement",
                 "Recommended Strategy", "Risk Factors"],
                [
                    [
                        p.module_id,
                        f"{p.success_rate * 100:.1f}%",
                        f"{p.average_duration_ms / 1000:.1f}s",
                        f"{p.average_health_improvement:.1f}",
                        p.recommended_strategy,
                        len(p.risk_factors),
                    ]
                    for p in inputs.module_profiles
                ],
            ))
        if inputs.operations:
            recent = inputs.operations[-RECENT_OPERATIONS_ROWS:]
            tables.append(Table(
                "recent-operations",
                "Recent Recovery Operations",
                ["Time", "Module", "Strategy", "Duration", "Success", "Health Improvement"],
                [
                    [
                        op.start_time.isoformat(),
                        op.module_id,
                        op.strategy.value,
                        f"{op.duration_ms / 1000:.1f}s",
                        op.success,
                        op.health_improvement,
                    ]
                    for op in recent
                ],
            ))
        return TableSection(section_id=spec.section_id, title=spec.title, tables=tables)

    def _timeline_section(self, spec: SectionSpec, inputs: ReportInputs) -> TimelineSection:
        ordered = sorted(inputs.operations, key=lambda op: op.start_time, reverse=True)
        events = [
            TimelineEvent(
                timestamp=op.start_time.isoformat(),
                title=f"{op.module_id} Recovery",
                description=f"{op.strategy.value} strategy - {'Success' if op.success else 'Failed'}",
                outcome="success" if op.success else "failure",
                details={
                    "duration_ms": op.duration_ms,
                    "health_improvement": op.health_improvement,
                    "strategy": op.strategy.value,
                },
            )
            for op in ordered[:TIMELINE_MAX_EVENTS]
        ]
        return TimelineSection(section_id=spec.section_id, title=spec.title, events=events)

    def _heatmap_section(self, spec: SectionSpec, inputs: ReportInputs) -> HeatmapSection:
        cells: List[HeatmapCell] = []
        if inputs.operations:
            for module_id in KNOWN_MODULES:
                for strategy in RecoveryStrategy.ordered():
                    ops = _ops_for(inputs.operations, module_id, strategy)
                    cells.append(HeatmapCell(
                        x=strategy.value,
                        y=module_id,
                        value=_rate(sum(1 for op in ops if op.success), len(ops)),
                        count=len(ops),
                    ))
        return HeatmapSection(section_id=spec.section_id, title=spec.title, cells=cells)

    def _text_section(self, spec: SectionSpec, inputs: ReportInputs) -> TextSection:
        text = spec.text or "No content specified"
        report = inputs.system_report
        if report is not None:
            s = report.summary
            rate = _rate(s.successful_operations, s.total_operations)
            text = text.replace("{total_operations}", str(s.total_operations))
            text = text.replace("{success_rate}", f"{rate * 100:.1f}")
        return TextSection(section_id=spec.section_id, title=spec.title, text=text)


def _ops_for(
    operations: Sequence[RecoveryOperationRecord], module_id: str, strategy: RecoveryStrategy,
) -> List[RecoveryOperationRecord]:
    return [op for op in operations if op.module_id == module_id and op.strategy == strategy]
