"""Record store kept in local key-value storage for cache-only deployments."""

import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from wayleave_tracker.domain.backend import BackendResult
from wayleave_tracker.domain.wayleaves import (
    WayleaveRecord,
    record_to_row,
    row_to_record,
)
from wayleave_tracker.errors import BackendError
from wayleave_tracker.services.notifications import KeyValueStorage
from wayleave_tracker.services.records import RecordStore

RECORDS_KEY = "wayleaveRecords"
UNREADABLE_RECORDS_MESSAGE = "Stored records could not be read."
UNWRITABLE_RECORDS_MESSAGE = "Records could not be saved locally."

_logger = logging.getLogger(__name__)


@dataclass
class LocalRecordStore(RecordStore):
    """Keeps every record as a row in one storage entry."""

    storage: KeyValueStorage
    key: str = RECORDS_KEY

    async def select_all(self) -> BackendResult[list[WayleaveRecord]]:
        """Return stored records, newest first."""
        try:
            records = [row_to_record(row) for row in self._rows()]
        except BackendError as exc:
            return BackendResult(error=exc.message)
        except (ValueError, TypeError) as exc:
            _logger.warning("Stored record under %s is malformed: %s", self.key, exc)
            return BackendResult(error=UNREADABLE_RECORDS_MESSAGE)
        records.sort(key=_created_sort_key, reverse=True)
        return BackendResult(data=records)

    async def insert(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Store a new record, assigning its creation time."""
        try:
            rows = self._rows()
            if any(row.get("id") == record.id for row in rows):
                return BackendResult(error=f"Record {record.id} already exists.")
            stored = replace(record, created_at=datetime.now(tz=UTC))
            self._save([_to_row(stored), *rows])
        except BackendError as exc:
            return BackendResult(error=exc.message)
        return BackendResult(data=stored)

    async def update(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Replace a stored record, keeping its creation time."""
        try:
            rows = self._rows()
            for index, row in enumerate(rows):
                if row.get("id") == record.id:
                    stored = replace(record, created_at=row_to_record(row).created_at)
                    rows[index] = _to_row(stored)
                    self._save(rows)
                    return BackendResult(data=stored)
        except BackendError as exc:
            return BackendResult(error=exc.message)
        return BackendResult(error=f"Record {record.id} does not exist.")

    async def delete(self, record_id: str) -> BackendResult[None]:
        """Remove a stored record."""
        try:
            self._save([row for row in self._rows() if row.get("id") != record_id])
        except BackendError as exc:
            return BackendResult(error=exc.message)
        return BackendResult()

    def _rows(self) -> list[dict[str, object]]:
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            payload = json.loads(raw)
            return [row for row in payload if isinstance(row, dict)]
        except (ValueError, TypeError) as exc:
            _logger.warning("Stored records under %s are unreadable: %s", self.key, exc)
            raise BackendError(UNREADABLE_RECORDS_MESSAGE) from exc

    def _save(self, rows: list[dict[str, object]]) -> None:
        try:
            self.storage.set(self.key, json.dumps(rows))
        except OSError as exc:
            _logger.warning("Saving records under %s failed: %s", self.key, exc)
            raise BackendError(UNWRITABLE_RECORDS_MESSAGE) from exc


def _to_row(record: WayleaveRecord) -> dict[str, object]:
    row = record_to_row(record)
    row["created_at"] = record.created_at.isoformat() if record.created_at else None
    return row


def _created_sort_key(record: WayleaveRecord) -> datetime:
    return record.created_at or datetime.min.replace(tzinfo=UTC)
