"""Supabase Auth adapter for the identity service."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx
from supabase import AsyncClient, AuthError

from wayleave_tracker.adapters.supabase_errors import error_message
from wayleave_tracker.adapters.supabase_profile_repository import profile_from_row
from wayleave_tracker.domain.backend import (
    AuthUser,
    BackendResult,
    SignInResult,
    SignUpResult,
)
from wayleave_tracker.domain.users import UserProfile
from wayleave_tracker.services.auth import IdentityGateway, SessionChangeHandler

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityGateway(IdentityGateway):
    """Signs users in and out through Supabase Auth."""

    client: AsyncClient
    profile_function: str = "create-profile"
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Sign in with email and password."""
        try:
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as exc:
            return SignInResult(error=error_message(exc))
        return SignInResult(user=_auth_user(response.user))

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        """Create a new identity."""
        try:
            response = await self.client.auth.sign_up(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as exc:
            return SignUpResult(error=error_message(exc))
        return SignUpResult(
            user=_auth_user(response.user),
            has_session=response.session is not None,
        )

    async def provision_profile(self, cpr: str) -> BackendResult[UserProfile]:
        """Ask the profile edge function to create the caller's profile row."""
        try:
            payload = await self.client.functions.invoke(
                self.profile_function,
                invoke_options={"body": {"cpr": cpr}, "responseType": "json"},
            )
        except httpx.HTTPError as exc:
            return BackendResult(error=error_message(exc))
        except Exception as exc:
            # Edge function errors carry the function's response as the message.
            _logger.warning("Profile provisioning failed: %s", exc)
            return BackendResult(error=error_message(exc))
        row = payload.get("profile", payload) if isinstance(payload, dict) else None
        if not isinstance(row, dict) or "id" not in row:
            return BackendResult()
        return BackendResult(data=profile_from_row(row))

    async def sign_out(self) -> BackendResult[None]:
        """End the Supabase session."""
        try:
            await self.client.auth.sign_out()
        except (AuthError, httpx.HTTPError) as exc:
            return BackendResult(error=error_message(exc))
        return BackendResult()

    async def current_user(self) -> AuthUser | None:
        """Return the user of a persisted session, if any."""
        try:
            session = await self.client.auth.get_session()
        except (AuthError, httpx.HTTPError) as exc:
            _logger.warning("Could not read stored session: %s", exc)
            return None
        return _auth_user(session.user) if session else None

    def on_session_change(self, handler: SessionChangeHandler) -> None:
        """Forward Supabase auth events to ``handler`` as tasks on the running loop."""

        def callback(event: str, session: object) -> None:
            user = _auth_user(getattr(session, "user", None))
            task = asyncio.get_running_loop().create_task(handler(str(event), user))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self.client.auth.on_auth_state_change(callback)

    async def close(self) -> None:
        """Cancel auth event handlers that are still running."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()


def _auth_user(user: object) -> AuthUser | None:
    if user is None:
        return None
    user_id = str(user.id)  # type: ignore[attr-defined]
    return AuthUser(id=user_id, email=getattr(user, "email", None))
