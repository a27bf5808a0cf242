"""Toasts and the persisted notification log."""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID, uuid4

from wayleave_tracker.domain.notifications import AppNotification, Toast, ToastSeverity
from wayleave_tracker.services.state import StateCell

NOTIFICATIONS_KEY = "appNotifications"

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Durable local key-value storage."""

    def get(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""

    def set(self, key: str, value: str) -> None:
        """Store a value under a key."""


@dataclass
class NotificationBus:
    """Queues self-expiring toasts and keeps the persisted notification log."""

    storage: KeyValueStorage
    toast_ttl_seconds: float = 5.0
    clock: Callable[[], float] = time.monotonic
    toasts: StateCell[list[Toast]] = field(init=False)
    notifications: StateCell[list[AppNotification]] = field(init=False)

    def __post_init__(self) -> None:
        self.toasts = StateCell([])
        self.notifications = StateCell(self._load_notifications())

    def show(
        self, message: str, severity: ToastSeverity | str = ToastSeverity.INFO
    ) -> Toast:
        """Append a toast that removes itself after the configured delay."""
        toast = Toast(
            id=uuid4(),
            message=message,
            severity=ToastSeverity(severity),
            expires_at=self.clock() + self.toast_ttl_seconds,
        )
        self.toasts.update(lambda current: [*current, toast])
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a running loop expiry is applied on the next read.
            return toast
        loop.call_later(self.toast_ttl_seconds, self.dismiss, toast.id)
        return toast

    def dismiss(self, toast_id: UUID) -> None:
        """Remove a toast before or at its expiry."""
        current = self.toasts.get()
        remaining = [toast for toast in current if toast.id != toast_id]
        if len(remaining) != len(current):
            self.toasts.set(remaining)

    def active_toasts(self) -> list[Toast]:
        """Return unexpired toasts in insertion order."""
        now = self.clock()
        current = self.toasts.get()
        active = [toast for toast in current if toast.expires_at > now]
        if len(active) != len(current):
            self.toasts.set(active)
        return active

    def add(self, message: str) -> AppNotification:
        """Prepend an unread entry to the notification log and persist it."""
        notification = AppNotification(
            id=uuid4(),
            message=message,
            timestamp=datetime.now(tz=UTC),
        )
        self.notifications.update(lambda current: [notification, *current])
        self._persist()
        return notification

    def unread_count(self) -> int:
        """Return how many log entries are unread."""
        return sum(1 for entry in self.notifications.get() if not entry.read)

    def mark_all_read(self) -> None:
        """Mark every log entry as read and persist."""
        self.notifications.update(
            lambda current: [replace(entry, read=True) for entry in current]
        )
        self._persist()

    def _persist(self) -> None:
        payload = [entry.to_json() for entry in self.notifications.get()]
        try:
            self.storage.set(NOTIFICATIONS_KEY, json.dumps(payload))
        except OSError:
            # The in-memory log stays current; the next write retries.
            _logger.warning("Could not persist the notification log", exc_info=True)

    def _load_notifications(self) -> list[AppNotification]:
        raw = self.storage.get(NOTIFICATIONS_KEY)
        if not raw:
            return []
        try:
            payload = json.loads(raw)
            return [AppNotification.from_json(entry) for entry in payload]
        except (ValueError, KeyError, TypeError):
            _logger.warning("Ignoring unreadable notification log in storage")
            return []
