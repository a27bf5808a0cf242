"""Domain models for toasts and the notification log."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class ToastSeverity(StrEnum):
    """Visual severity of a toast."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Toast:
    """Ephemeral message that expires on its own."""

    id: UUID
    message: str
    severity: ToastSeverity
    expires_at: float


@dataclass(frozen=True)
class AppNotification:
    """Entry of the persisted notification log."""

    id: UUID
    message: str
    timestamp: datetime
    read: bool = False

    def to_json(self) -> dict[str, object]:
        """Serialize for durable storage."""
        return {
            "id": str(self.id),
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
        }

    @classmethod
    def from_json(cls, payload: dict[str, object]) -> "AppNotification":
        """Deserialize from durable storage."""
        return cls(
            id=UUID(str(payload["id"])),
            message=str(payload.get("message", "")),
            timestamp=datetime.fromisoformat(str(payload["timestamp"])),
            read=bool(payload.get("read", False)),
        )
