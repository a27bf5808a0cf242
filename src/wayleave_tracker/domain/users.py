"""Domain models for users, profiles and sessions."""

from dataclasses import dataclass
from enum import StrEnum


class UserRole(StrEnum):
    """Roles a profile can be assigned."""

    ADMIN = "Admin"
    EDD_PLANNING = "EDD Planning"
    CONSULTATION_TEAM = "Consultation Team"


def normalize_role(value: object) -> str | None:
    """Return a lower-cased role string, or None when no role is set."""
    if value is None:
        return None
    text = str(value).strip()
    return text.lower() or None


def parse_role(value: object) -> UserRole | None:
    """Parse a role stored in the backend, ignoring case."""
    normalized = normalize_role(value)
    if normalized is None:
        return None
    for role in UserRole:
        if role.value.lower() == normalized:
            return role
    return None


@dataclass(frozen=True)
class UserProfile:
    """Represents a row of the profiles table."""

    id: str
    cpr: str
    name: str
    role: UserRole | None


@dataclass(frozen=True)
class Session:
    """The signed-in identity and its resolved role.

    A session whose role is None belongs to a provisioned user who is still
    waiting for an administrator to assign a role.
    """

    user_id: str
    cpr: str
    name: str
    role: UserRole | None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "Session":
        """Build a session from a loaded profile."""
        return cls(
            user_id=profile.id,
            cpr=profile.cpr,
            name=profile.name,
            role=profile.role,
        )

    @property
    def audit_label(self) -> str:
        """Label written to ``last_updated_by`` on records."""
        role = self.role.value if self.role else "Unassigned"
        return f"{role} - {self.cpr}"
