"""Supabase-backed profile repository."""

import logging
from dataclasses import dataclass

import httpx
from supabase import AsyncClient, PostgrestAPIError

from wayleave_tracker.adapters.supabase_errors import error_message
from wayleave_tracker.domain.backend import BackendResult
from wayleave_tracker.domain.users import UserProfile, parse_role
from wayleave_tracker.services.auth import ProfileRepository

_logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = "id, cpr, name, role"


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for the profiles table."""

    client: AsyncClient
    table: str = "profiles"

    async def get_profile(self, user_id: str) -> BackendResult[UserProfile]:
        """Return the profile for a user, if present."""
        try:
            response = (
                await self.client.table(self.table)
                .select(_PROFILE_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            _logger.warning("Profile lookup failed: %s", exc)
            return BackendResult(error=error_message(exc))
        if not response.data:
            return BackendResult()
        return BackendResult(data=profile_from_row(response.data[0]))

    async def list_profiles(self) -> BackendResult[list[UserProfile]]:
        """Return every profile ordered by name."""
        try:
            response = (
                await self.client.table(self.table)
                .select(_PROFILE_COLUMNS)
                .order("name")
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return BackendResult(error=error_message(exc))
        profiles = [profile_from_row(row) for row in response.data or []]
        return BackendResult(data=profiles)

    async def update_role(
        self, user_id: str, role: str | None
    ) -> BackendResult[UserProfile]:
        """Set the role column and return the updated profile."""
        try:
            response = (
                await self.client.table(self.table)
                .update({"role": role})
                .eq("id", user_id)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return BackendResult(error=error_message(exc))
        if not response.data:
            return BackendResult(error="Failed to update user role.")
        return BackendResult(data=profile_from_row(response.data[0]))


def profile_from_row(row: dict[str, object]) -> UserProfile:
    """Build a profile from a profiles row."""
    return UserProfile(
        id=str(row["id"]),
        cpr=str(row.get("cpr") or ""),
        name=str(row.get("name") or row.get("cpr") or ""),
        role=parse_role(row.get("role")),
    )
