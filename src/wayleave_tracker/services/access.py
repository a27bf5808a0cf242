"""Role-based access rules for wayleave records."""

from collections.abc import Iterable
from dataclasses import dataclass

from wayleave_tracker.domain.users import UserRole, normalize_role

_ADMIN = UserRole.ADMIN.value.lower()
_PLANNER = UserRole.EDD_PLANNING.value.lower()
_REVIEWER = UserRole.CONSULTATION_TEAM.value.lower()


def role_in(role: object, roles: Iterable[object]) -> bool:
    """Return True when ``role`` matches one of ``roles``, ignoring case."""
    normalized = normalize_role(role)
    if normalized is None:
        return False
    return normalized in {normalize_role(candidate) for candidate in roles}


def can_create(role: object) -> bool:
    """Admins and planners may create new records."""
    return normalize_role(role) in {_ADMIN, _PLANNER}


def can_delete(role: object) -> bool:
    """Only admins may delete records."""
    return normalize_role(role) == _ADMIN


def can_edit_field(role: object, field_name: str, *, is_existing: bool) -> bool:
    """Return whether ``role`` may edit ``field_name`` on a new or existing record.

    Planners fill in new records, reviewers work on existing ones and admins
    may edit anything. The rules do not currently vary by field.
    """
    normalized = normalize_role(role)
    if normalized == _ADMIN:
        return True
    if normalized == _PLANNER:
        return not is_existing
    if normalized == _REVIEWER:
        return is_existing
    return False


def can_change_role(target_role: object) -> bool:
    """An admin's own role can never be changed."""
    return normalize_role(target_role) != _ADMIN


@dataclass(frozen=True)
class AccessDecision:
    """Permissions of one role for a new or an existing record."""

    role: str | None
    is_existing: bool
    can_create: bool
    can_delete: bool

    def can_edit_field(self, field_name: str) -> bool:
        """Return whether the field is editable in this context."""
        return can_edit_field(self.role, field_name, is_existing=self.is_existing)


def evaluate(role: object, *, is_existing: bool) -> AccessDecision:
    """Evaluate every permission for ``role`` at once."""
    normalized = normalize_role(role)
    return AccessDecision(
        role=normalized,
        is_existing=is_existing,
        can_create=can_create(normalized),
        can_delete=can_delete(normalized),
    )
