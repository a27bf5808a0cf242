"""Supabase-backed wayleave record store."""

import logging
from dataclasses import dataclass

import httpx
from supabase import AsyncClient, PostgrestAPIError

from wayleave_tracker.adapters.supabase_errors import error_message
from wayleave_tracker.domain.backend import BackendResult
from wayleave_tracker.domain.wayleaves import (
    WayleaveRecord,
    record_to_row,
    row_to_record,
)
from wayleave_tracker.services.records import RecordStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseRecordStore(RecordStore):
    """Supabase implementation for wayleave record persistence."""

    client: AsyncClient
    table: str = "wayleave_records"

    async def select_all(self) -> BackendResult[list[WayleaveRecord]]:
        """Return every visible record ordered by creation time, newest first."""
        try:
            response = (
                await self.client.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            _logger.warning("Loading records failed: %s", exc)
            return BackendResult(error=error_message(exc))
        return BackendResult(data=[row_to_record(row) for row in response.data or []])

    async def insert(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Insert a record row and return the stored row."""
        try:
            response = (
                await self.client.table(self.table)
                .insert(record_to_row(record))
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            _logger.warning("Inserting record %s failed: %s", record.id, exc)
            return BackendResult(error=error_message(exc))
        if not response.data:
            return BackendResult(error="Failed to create record.")
        return BackendResult(data=row_to_record(response.data[0]))

    async def update(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Update a record row and return the stored row."""
        patch = record_to_row(record)
        patch.pop("id", None)
        try:
            response = (
                await self.client.table(self.table)
                .update(patch)
                .eq("id", record.id)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            _logger.warning("Updating record %s failed: %s", record.id, exc)
            return BackendResult(error=error_message(exc))
        if not response.data:
            return BackendResult(error="Failed to update record.")
        return BackendResult(data=row_to_record(response.data[0]))

    async def delete(self, record_id: str) -> BackendResult[None]:
        """Delete a record row."""
        try:
            await self.client.table(self.table).delete().eq("id", record_id).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            _logger.warning("Deleting record %s failed: %s", record_id, exc)
            return BackendResult(error=error_message(exc))
        return BackendResult()
