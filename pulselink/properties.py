"""
Property catalog.

Properties come from a JSON document shaped like {"estates": [...]}. Entries
without an "id" are category headers for the app's list view and are not
properties.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class PropertyCatalog:
    def __init__(self, estates: Optional[List[Dict[str, Any]]] = None):
        self._estates: List[Dict[str, Any]] = list(estates or [])
        self._by_id: Dict[str, Dict[str, Any]] = {
            e["id"]: e for e in self._estates if isinstance(e, dict) and e.get("id")
        }

    @classmethod
    def load(cls, path: Path) -> "PropertyCatalog":
        """
        Load a catalog from disk.

        A missing or unreadable file yields an empty catalog; the server can
        still run with no devices.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            from pulselink.pulselink_logging import get_logger
            log = get_logger("PULSELINK")
            log.warning("PULSELINK.Properties.LoadError", extra={"fields": {
                "path": str(path),
                "error": str(e),
            }})
            return cls()

        estates = data.get("estates", []) if isinstance(data, dict) else []
        catalog = cls(estates if isinstance(estates, list) else [])
        logger.info(f"Loaded {len(catalog.property_ids())} properties from {path}")
        return catalog

    def properties(self) -> List[Dict[str, Any]]:
        """Entries that are real properties (have both id and name)."""
        return [e for e in self._by_id.values() if e.get("name")]

    def property_ids(self) -> List[str]:
        return list(self._by_id.keys())

    def get(self, property_id: str) -> Optional[Dict[str, Any]]:
        return self._by_id.get(property_id)

    def has(self, property_id: str) -> bool:
        return property_id in self._by_id
