"""Wayleave record repository with a backend-confirmed local cache."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol, TypeVar
from uuid import uuid4

from wayleave_tracker.domain.backend import BackendResult
from wayleave_tracker.domain.notifications import ToastSeverity
from wayleave_tracker.domain.users import Session
from wayleave_tracker.domain.wayleaves import (
    WayleaveDraft,
    WayleaveRecord,
    new_record,
    stamp_phase_entry,
)
from wayleave_tracker.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    ValidationError,
    WayleaveError,
)
from wayleave_tracker.services.auth import AuthSessionManager
from wayleave_tracker.services.notifications import NotificationBus
from wayleave_tracker.services.state import ActivityCell, StateCell

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Remote table holding wayleave records."""

    async def select_all(self) -> BackendResult[list[WayleaveRecord]]:
        """Return every visible record, newest first."""

    async def insert(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Insert a record and return the stored row."""

    async def update(self, record: WayleaveRecord) -> BackendResult[WayleaveRecord]:
        """Update a record and return the stored row."""

    async def delete(self, record_id: str) -> BackendResult[None]:
        """Delete a record row."""


class AttachmentStore(Protocol):
    """Remote bucket holding record attachments."""

    async def upload(self, path: str, content: bytes) -> BackendResult[None]:
        """Upload a file to ``path``."""

    async def public_uri(self, path: str) -> str:
        """Return the public URI for ``path``."""

    async def remove(self, uris: list[str]) -> BackendResult[None]:
        """Remove the files behind ``uris``."""


@dataclass
class RecordRepository:
    """Loads and mutates wayleave records.

    The cache in ``records`` is only written after the backend confirms an
    operation, and always with the row the backend returned.
    """

    store: RecordStore | None
    attachments: AttachmentStore | None
    auth: AuthSessionManager
    notifications: NotificationBus
    records: StateCell[list[WayleaveRecord]] = field(init=False)
    is_loading: ActivityCell = field(init=False)

    def __post_init__(self) -> None:
        self.records = StateCell([])
        self.is_loading = ActivityCell()

    def get(self, record_id: str) -> WayleaveRecord | None:
        """Return a cached record by id."""
        for record in self.records.get():
            if record.id == record_id:
                return record
        return None

    async def load(self) -> bool:
        """Replace the cache with every record the backend lets us see."""
        self.is_loading.begin()
        try:
            store = self._require_store()
            result = await store.select_all()
            records = _unwrap(result, "Failed to load records.")
        except WayleaveError as exc:
            self._report_failure("load", exc)
            return False
        finally:
            self.is_loading.end()
        self.records.set(records)
        return True

    async def create(self, draft: WayleaveDraft) -> WayleaveRecord | None:
        """Create a record from a draft and return the stored version."""
        self.is_loading.begin()
        try:
            session = self._require_session()
            store = self._require_store()
            if not draft.wayleave_number.strip():
                raise ValidationError("Wayleave number is required.")
            record = replace(
                new_record(draft, _now()),
                owner_id=session.user_id,
                last_updated_by=session.audit_label,
            )
            stored = _unwrap(await store.insert(record), "Failed to create record.")
        except WayleaveError as exc:
            self._report_failure("create", exc)
            return None
        finally:
            self.is_loading.end()

        self.records.update(lambda current: [stored, *current])
        self.notifications.add(
            f"New Wayleave {stored.wayleave_number} created by {session.name}."
        )
        self.notifications.show("Record created successfully!", ToastSeverity.SUCCESS)
        return stored

    async def update(self, record: WayleaveRecord) -> WayleaveRecord | None:
        """Save changes to a cached record, stamping a newly entered phase."""
        self.is_loading.begin()
        try:
            session = self._require_session()
            store = self._require_store()
            original = self.get(record.id)
            if original is None:
                raise ValidationError("Record not found.")
            prepared = replace(
                stamp_phase_entry(record, original, _now()),
                last_updated_by=session.audit_label,
            )
            stored = _unwrap(await store.update(prepared), "Failed to update record.")
        except WayleaveError as exc:
            self._report_failure("update", exc)
            return None
        finally:
            self.is_loading.end()

        self.records.update(
            lambda current: [
                stored if item.id == stored.id else item for item in current
            ]
        )
        if original.status != stored.status:
            self.notifications.add(
                f'Status of {stored.wayleave_number} changed to "{stored.status}" '
                f"by {session.name}."
            )
        self.notifications.show("Record updated successfully!", ToastSeverity.SUCCESS)
        return stored

    async def delete(self, record_id: str) -> bool:
        """Delete a record and, best-effort, its attachments."""
        self.is_loading.begin()
        try:
            store = self._require_store()
            record = self.get(record_id)
            if record is None:
                raise ValidationError("Record not found.")
            if record.attachments:
                await self._remove_attachments(record)
            _check(await store.delete(record_id))
        except WayleaveError as exc:
            self._report_failure("delete", exc)
            return False
        finally:
            self.is_loading.end()

        self.records.update(
            lambda current: [item for item in current if item.id != record_id]
        )
        self.notifications.show("Record deleted successfully!", ToastSeverity.SUCCESS)
        return True

    async def upload_attachment(
        self, record_id: str, filename: str, content: bytes
    ) -> str | None:
        """Upload a file for a record and return its public URI."""
        try:
            self._require_session()
            if self.attachments is None:
                raise ConfigurationError
            path = f"{record_id}/{uuid4()}-{filename}"
            _check(await self.attachments.upload(path, content))
            return await self.attachments.public_uri(path)
        except WayleaveError as exc:
            self._report_failure("upload", exc)
            return None

    async def _remove_attachments(self, record: WayleaveRecord) -> None:
        if self.attachments is None:
            _logger.warning("No attachment store, leaving files of %s", record.id)
            return
        result = await self.attachments.remove(list(record.attachments))
        if result.error:
            _logger.warning(
                "Attachment cleanup failed for %s: %s", record.id, result.error
            )
            self.notifications.show(
                "Some attachments could not be removed from storage.",
                ToastSeverity.INFO,
            )

    def _require_session(self) -> Session:
        session = self.auth.current_user.get()
        if session is None:
            raise AuthenticationError("You must be logged in to change records.")
        return session

    def _require_store(self) -> RecordStore:
        if self.store is None:
            raise ConfigurationError
        return self.store

    def _report_failure(self, action: str, exc: WayleaveError) -> None:
        _logger.warning("Record %s failed: %s", action, exc.message)
        self.notifications.show(exc.message, ToastSeverity.ERROR)


def _check(result: BackendResult) -> None:
    if result.error:
        raise BackendError(result.error)


def _unwrap(result: BackendResult[T], fallback: str) -> T:
    _check(result)
    if result.data is None:
        raise BackendError(fallback)
    return result.data


def _now() -> datetime:
    return datetime.now(tz=UTC)
