"""Persistence adapters."""
from .document_store import DocumentStore
from .report_writer import JsonReportWriter

__all__ = ["DocumentStore", "JsonReportWriter"]
