"""JSON file implementation of durable key-value storage."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from wayleave_tracker.services.notifications import KeyValueStorage

_logger = logging.getLogger(__name__)


@dataclass
class JsonFileStorage(KeyValueStorage):
    """Keeps string values in a single JSON object on disk."""

    path: Path

    def get(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        """Store a value under a key and flush the file."""
        entries = self._read()
        entries[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(entries), encoding="utf-8")
        tmp_path.replace(self.path)

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            _logger.warning("Storage file %s is not valid JSON", self.path)
            return {}
        return payload if isinstance(payload, dict) else {}
