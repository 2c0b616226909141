"""JSON document storage for recovery analytics.

One JSON file per document, grouped by namespace:
``<root>/<namespace>/<key>.json``. Directories are created on first use.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


def _safe_name(name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


class DocumentStore:
    """
    Keyed JSON document storage.

    Each namespace gets its own subdirectory, and each key becomes a JSON
    file. Writes go through a temporary file and an atomic rename so a
    reader never sees a half-written document.

    Example:
        store = DocumentStore(Path("analytics/recovery"))
        store.store("operations", "op-1", {"module_id": "auth"})
        doc = store.retrieve("operations", "op-1")
    """

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _get_cache_key(self, namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def path_for(self, namespace: str, key: str) -> Path:
        return self.root_dir / _safe_name(namespace) / f"{_safe_name(key)}.json"

    def store(self, namespace: str, key: str, value: Dict[str, Any]) -> bool:
        """
        Write a document to disk and cache.

        Args:
            namespace: Document family (e.g. "operations", "profiles")
            key: Unique identifier within the namespace
            value: JSON-serializable document

        Returns:
            True if the write succeeded, False otherwise (the failure is logged)
        """
        file_path = self.path_for(namespace, key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = file_path.with_suffix('.json.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(value, f, indent=2)
            temp_path.replace(file_path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to store document %s/%s: %s", namespace, key, e)
            return False

        self._cache[self._get_cache_key(namespace, key)] = value
        return True

    def retrieve(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Read a document from cache or disk.

        Returns:
            The stored document, or None if absent or unreadable
        """
        cache_key = self._get_cache_key(namespace, key)
        if cache_key in self._cache:
            return self._cache[cache_key]

        file_path = self.path_for(namespace, key)
        if not file_path.exists():
            return None
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                value = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read document %s: %s", file_path, e)
            return None

        self._cache[cache_key] = value
        return value

    def list_keys(self, namespace: str) -> List[str]:
        """List all keys in a namespace, sorted."""
        ns_dir = self.root_dir / _safe_name(namespace)
        if not ns_dir.is_dir():
            return []
        return sorted(f.stem for f in ns_dir.glob("*.json") if f.is_file())

    def retrieve_all(self, namespace: str) -> List[Dict[str, Any]]:
        """Every readable document in a namespace, in key order."""
        documents = []
        for key in self.list_keys(namespace):
            doc = self.retrieve(namespace, key)
            if doc is not None:
                documents.append(doc)
        return documents

    def delete(self, namespace: str, key: str) -> bool:
        self._cache.pop(self._get_cache_key(namespace, key), None)
        file_path = self.path_for(namespace, key)
        try:
            if file_path.exists():
                file_path.unlink()
            return True
        except OSError as e:
            logger.warning("Failed to delete document %s: %s", file_path, e)
            return False

    def get_storage_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "root_dir": str(self.root_dir),
            "cache_size": len(self._cache),
            "namespaces": {},
            "total_documents": 0,
        }
        if not self.root_dir.is_dir():
            return stats
        for ns_dir in sorted(self.root_dir.iterdir()):
            if ns_dir.is_dir():
                count = len(self.list_keys(ns_dir.name))
                stats["namespaces"][ns_dir.name] = count
                stats["total_documents"] += count
        return stats

    def clear_cache(self) -> None:
        """Clear the in-memory cache."""
        self._cache.clear()
