"""Default reporting collaborator: writes report payloads as JSON."""
from __future__ import annotations

import logging
from pathlib import Path

from wsrecovery.domains.reporting.entities import ReportData
from wsrecovery.domains.shared.errors import ReportWriteError

from .document_store import DocumentStore

logger = logging.getLogger(__name__)

REPORTS_NAMESPACE = "json"


class JsonReportWriter:
    """Writes ``<reports_dir>/json/<report_id>.json`` and returns its path."""

    def __init__(self, reports_dir: Path) -> None:
        self._store = DocumentStore(reports_dir)

    def render(self, report: ReportData) -> Path:
        """Write one report.

        Raises:
            ReportWriteError: If the document could not be written
        """
        if not self._store.store(REPORTS_NAMESPACE, report.report_id, report.to_dict()):
            raise ReportWriteError(report.report_id, "document store rejected the write")
        path = self._store.path_for(REPORTS_NAMESPACE, report.report_id)
        logger.info("Report written: %s", path)
        return path
