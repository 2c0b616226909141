"""Tests for the JSON document store and report writer."""
import json
from datetime import datetime, timezone

import pytest

from wsrecovery.domains.analytics import Timeframe
from wsrecovery.domains.reporting import ReportBuilder, ReportInputs
from wsrecovery.domains.shared import ReportWriteError
from wsrecovery.persistence import DocumentStore, JsonReportWriter


# ── Helpers ──────────────────────────────────────────────────────────


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
REPORT_ID = f"report-executive-{int(NOW.timestamp() * 1000)}"


def _make_report():
    builder = ReportBuilder(clock=lambda: NOW)
    return builder.build("executive", ReportInputs(), Timeframe.named("week", NOW))


class TestDocumentStore:
    def test_store_and_retrieve(self, tmp_path):
        store = DocumentStore(tmp_path)
        assert store.store("operations", "op-1", {"module_id": "auth"})

        path = tmp_path / "operations" / "op-1.json"
        assert json.loads(path.read_text(encoding="utf-8")) == {"module_id": "auth"}

        store.clear_cache()
        assert store.retrieve("operations", "op-1") == {"module_id": "auth"}
        assert not path.with_suffix(".json.tmp").exists()

    def test_missing_document(self, tmp_path):
        assert DocumentStore(tmp_path).retrieve("operations", "nope") is None

    def test_unreadable_document_returns_none(self, tmp_path):
        (tmp_path / "operations").mkdir()
        (tmp_path / "operations" / "bad.json").write_text("{not json", encoding="utf-8")
        assert DocumentStore(tmp_path).retrieve("operations", "bad") is None

    def test_keys_are_sanitized(self, tmp_path):
        store = DocumentStore(tmp_path)
        assert store.path_for("ops", "a/b:c") == tmp_path / "ops" / "a_b_c.json"

    def test_list_retrieve_all_and_delete(self, tmp_path):
        store = DocumentStore(tmp_path)
        store.store("profiles", "payments", {"n": 2})
        store.store("profiles", "auth", {"n": 1})

        assert store.list_keys("profiles") == ["auth", "payments"]
        assert store.retrieve_all("profiles") == [{"n": 1}, {"n": 2}]

        assert store.delete("profiles", "auth")
        assert store.list_keys("profiles") == ["payments"]
        assert store.retrieve("profiles", "auth") is None
        assert store.list_keys("missing") == []

    def test_unserializable_value_is_rejected(self, tmp_path):
        store = DocumentStore(tmp_path)
        assert not store.store("operations", "op-1", {"when": object()})
        assert store.retrieve("operations", "op-1") is None

    def test_storage_stats(self, tmp_path):
        store = DocumentStore(tmp_path / "analytics")
        assert store.get_storage_stats()["total_documents"] == 0

        store.store("operations", "op-1", {})
        store.store("operations", "op-2", {})
        store.store("profiles", "auth", {})

        stats = store.get_storage_stats()
        assert stats["namespaces"] == {"operations": 2, "profiles": 1}
        assert stats["total_documents"] == 3
        assert stats["cache_size"] == 3


class TestJsonReportWriter:
    def test_render_writes_report(self, tmp_path):
        path = JsonReportWriter(tmp_path / "reports").render(_make_report())

        assert path == tmp_path / "reports" / "json" / f"{REPORT_ID}.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["id"] == REPORT_ID
        assert data["title"] == "Executive Summary Report"

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "reports"
        blocker.write_text("not a directory", encoding="utf-8")

        with pytest.raises(ReportWriteError, match=REPORT_ID):
            JsonReportWriter(blocker).render(_make_report())
