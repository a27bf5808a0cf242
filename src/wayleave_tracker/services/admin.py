"""Administration of user roles."""

import logging
from dataclasses import dataclass, field

from wayleave_tracker.domain.notifications import ToastSeverity
from wayleave_tracker.domain.users import UserProfile, UserRole
from wayleave_tracker.services.access import can_change_role
from wayleave_tracker.services.auth import ProfileRepository
from wayleave_tracker.services.notifications import NotificationBus
from wayleave_tracker.services.state import ActivityCell, StateCell

_logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    """Lists profiles and assigns roles to them."""

    profiles: ProfileRepository | None
    notifications: NotificationBus
    users: StateCell[list[UserProfile]] = field(init=False)
    is_loading: ActivityCell = field(init=False)

    def __post_init__(self) -> None:
        self.users = StateCell([])
        self.is_loading = ActivityCell()

    def pending_users_count(self) -> int:
        """Return how many users are still waiting for a role."""
        return sum(1 for user in self.users.get() if user.role is None)

    async def load_users(self) -> None:
        """Fetch every profile, ordered by name."""
        if self.profiles is None:
            return
        self.is_loading.begin()
        try:
            result = await self.profiles.list_profiles()
        finally:
            self.is_loading.end()
        if result.error:
            _logger.warning("Failed to fetch users: %s", result.error)
            self.notifications.show(result.error, ToastSeverity.ERROR)
            return
        self.users.set(result.data or [])

    async def update_user_role(self, user_id: str, role: UserRole | None) -> bool:
        """Assign ``role`` to a user; admins keep their role."""
        if self.profiles is None:
            return False
        target = next((user for user in self.users.get() if user.id == user_id), None)
        if target is None:
            lookup = await self.profiles.get_profile(user_id)
            if lookup.error:
                _logger.warning(
                    "Profile lookup for %s failed: %s", user_id, lookup.error
                )
                self.notifications.show(lookup.error, ToastSeverity.ERROR)
                return False
            target = lookup.data
        if target is not None and not can_change_role(target.role):
            self.notifications.show(
                "Cannot change the role of an Admin.", ToastSeverity.ERROR
            )
            return False

        self.is_loading.begin()
        try:
            result = await self.profiles.update_role(
                user_id, role.value if role else None
            )
        finally:
            self.is_loading.end()
        if result.error or result.data is None:
            message = result.error or "Failed to update user role."
            _logger.warning("Role update for %s failed: %s", user_id, message)
            self.notifications.show(message, ToastSeverity.ERROR)
            return False

        updated = result.data
        self.users.update(
            lambda current: [
                updated if user.id == user_id else user for user in current
            ]
        )
        self.notifications.show(
            "User role updated successfully!", ToastSeverity.SUCCESS
        )
        return True
