"""Authentication and session state machine."""

import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from wayleave_tracker.config import cpr_from_login_email, login_email
from wayleave_tracker.domain.backend import (
    AuthUser,
    BackendResult,
    SignInResult,
    SignUpResult,
)
from wayleave_tracker.domain.notifications import ToastSeverity
from wayleave_tracker.domain.users import Session, UserProfile
from wayleave_tracker.errors import (
    AuthenticationError,
    ConfigurationError,
    ValidationError,
)
from wayleave_tracker.services.access import role_in
from wayleave_tracker.services.notifications import NotificationBus
from wayleave_tracker.services.state import StateCell

INVALID_CREDENTIALS_MESSAGE = "Invalid CPR or password."
PENDING_CONFIRMATION_MESSAGE = (
    "Sign-in is pending confirmation. Please confirm your account and try again."
)
CONFIRMATION_REQUIRED_MESSAGE = (
    "Account created. Please confirm your account before signing in."
)
PROFILE_LOAD_FAILED_MESSAGE = (
    "Could not load your profile. You are signed in without a role for now."
)

SIGNED_OUT_EVENT = "SIGNED_OUT"

_CPR_PATTERN = re.compile(r"^\d{9}$")

_logger = logging.getLogger(__name__)

SessionChangeHandler = Callable[[str, AuthUser | None], Awaitable[None]]


class IdentityGateway(Protocol):
    """Remote identity service."""

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Sign in with an email and password."""

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        """Create a new identity."""

    async def provision_profile(self, cpr: str) -> BackendResult[UserProfile]:
        """Create the profile row for the signed-in identity server-side."""

    async def sign_out(self) -> BackendResult[None]:
        """End the remote session."""

    async def current_user(self) -> AuthUser | None:
        """Return the identity of a stored session, if any."""

    def on_session_change(self, handler: SessionChangeHandler) -> None:
        """Register a handler for background auth events."""


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    async def get_profile(self, user_id: str) -> BackendResult[UserProfile]:
        """Return the profile for a user; no data and no error means not found."""

    async def list_profiles(self) -> BackendResult[list[UserProfile]]:
        """Return all profiles ordered by name."""

    async def update_role(
        self, user_id: str, role: str | None
    ) -> BackendResult[UserProfile]:
        """Set a user's role and return the updated profile."""


class AuthState(StrEnum):
    """States of the session state machine."""

    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED_RESOLVED = "authenticated_resolved"
    AUTHENTICATED_DEGRADED = "authenticated_degraded"


@dataclass(frozen=True)
class AuthResult:
    """Structured outcome of a login attempt."""

    success: bool
    error: str | None = None


@dataclass
class AuthSessionManager:
    """Owns the current session and drives sign-in, provisioning and sign-out.

    The manager is the only writer of ``current_user`` and ``state``. While
    ``login`` is running, background session-change events are ignored so the
    same sign-in is not processed twice.
    """

    identity: IdentityGateway | None
    profiles: ProfileRepository | None
    notifications: NotificationBus
    login_email_domain: str = "wayleave.local"
    current_user: StateCell[Session | None] = field(init=False)
    state: StateCell[AuthState] = field(init=False)
    _login_in_progress: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.current_user = StateCell(None)
        self.state = StateCell(AuthState.SIGNED_OUT)

    @property
    def is_authenticated(self) -> bool:
        """Return True when a session is installed."""
        return self.current_user.get() is not None

    def has_role(self, roles: Iterable[object]) -> bool:
        """Return True when the current user holds one of ``roles``."""
        session = self.current_user.get()
        if session is None or session.role is None:
            return False
        return role_in(session.role, roles)

    async def login(self, cpr: str, password: str) -> AuthResult:
        """Sign in, provisioning a new account when the credentials are unknown."""
        try:
            _validate_credentials(cpr, password)
            identity = self._require_identity()
        except (ValidationError, ConfigurationError) as exc:
            return self._fail(exc.message, clear_session=False)

        self._login_in_progress = True
        self.state.set(AuthState.AUTHENTICATING)
        try:
            return await self._login(identity, cpr.strip(), password)
        except AuthenticationError as exc:
            return self._fail(exc.message)
        except Exception:
            _logger.exception("Unexpected error during login")
            return self._fail("Login failed due to an unexpected error.")
        finally:
            self._login_in_progress = False

    async def restore(self) -> None:
        """Install the session of an identity that is already signed in."""
        if self.identity is None:
            return
        user = await self.identity.current_user()
        if user is None:
            return
        await self._resolve_session(user)

    async def handle_session_change(self, event: str, user: AuthUser | None) -> None:
        """React to a background auth event from the identity service."""
        if self._login_in_progress:
            _logger.debug("Ignoring auth event %s during login", event)
            return
        if event == SIGNED_OUT_EVENT or user is None:
            self._clear_session()
            return
        current = self.current_user.get()
        if current is not None and current.user_id == user.id:
            return
        await self._resolve_session(user)

    async def logout(self) -> None:
        """Sign out remotely; the local session follows the backend's confirmation."""
        if self.identity is None:
            self._clear_session()
            return
        result = await self.identity.sign_out()
        if result.error:
            _logger.warning("Sign-out failed: %s", result.error)
            self.notifications.show(result.error, ToastSeverity.ERROR)
            return
        self._clear_session()

    async def _login(
        self, identity: IdentityGateway, cpr: str, password: str
    ) -> AuthResult:
        email = login_email(cpr, self.login_email_domain)
        result = await identity.sign_in(email, password)
        if result.error:
            if _is_invalid_credentials(result.error):
                return await self._provision(identity, cpr, email, password)
            raise AuthenticationError(result.error)
        if result.user is None:
            raise AuthenticationError(PENDING_CONFIRMATION_MESSAGE)

        session = await self._resolve_session(result.user)
        self.notifications.show(f"Welcome back, {session.name}!", ToastSeverity.SUCCESS)
        return AuthResult(success=True)

    async def _provision(
        self, identity: IdentityGateway, cpr: str, email: str, password: str
    ) -> AuthResult:
        _logger.info("Unknown credentials, provisioning a new account")
        signup = await identity.sign_up(email, password)
        if signup.error:
            if _is_already_registered(signup.error):
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
            raise AuthenticationError(signup.error)
        if signup.user is None or not signup.has_session:
            raise AuthenticationError(CONFIRMATION_REQUIRED_MESSAGE)

        provisioned = await identity.provision_profile(cpr)
        if provisioned.error:
            raise AuthenticationError(provisioned.error)
        if provisioned.data is not None:
            self._install(Session.from_profile(provisioned.data), resolved=True)
        else:
            await self._resolve_session(signup.user)
        self.notifications.show(
            "Welcome, new user! An administrator will assign your role.",
            ToastSeverity.SUCCESS,
        )
        return AuthResult(success=True)

    async def _resolve_session(self, user: AuthUser) -> Session:
        fallback = Session(
            user_id=user.id,
            cpr=cpr_from_login_email(user.email),
            name=cpr_from_login_email(user.email),
            role=None,
        )
        if self.profiles is None:
            self._install(fallback, resolved=False)
            return fallback
        lookup = await self.profiles.get_profile(user.id)
        if lookup.error:
            _logger.warning("Profile fetch failed for %s: %s", user.id, lookup.error)
            self.notifications.show(PROFILE_LOAD_FAILED_MESSAGE, ToastSeverity.ERROR)
            self._install(fallback, resolved=False)
            return fallback
        if lookup.data is None:
            _logger.info("No profile yet for %s, awaiting role assignment", user.id)
            self._install(fallback, resolved=False)
            return fallback
        session = Session.from_profile(lookup.data)
        self._install(session, resolved=True)
        return session

    def _install(self, session: Session, *, resolved: bool) -> None:
        self.current_user.set(session)
        self.state.set(
            AuthState.AUTHENTICATED_RESOLVED
            if resolved
            else AuthState.AUTHENTICATED_DEGRADED
        )

    def _clear_session(self) -> None:
        if self.current_user.get() is not None:
            self.current_user.set(None)
        if self.state.get() != AuthState.SIGNED_OUT:
            self.state.set(AuthState.SIGNED_OUT)

    def _fail(self, message: str, *, clear_session: bool = True) -> AuthResult:
        if clear_session:
            self._clear_session()
        self.notifications.show(message, ToastSeverity.ERROR)
        return AuthResult(success=False, error=message)

    def _require_identity(self) -> IdentityGateway:
        if self.identity is None:
            raise ConfigurationError
        return self.identity


def _validate_credentials(cpr: str, password: str) -> None:
    if not cpr or not cpr.strip() or not password:
        raise ValidationError("CPR and password are required.")
    if not _CPR_PATTERN.match(cpr.strip()):
        raise ValidationError("CPR must be 9 digits.")


def _is_invalid_credentials(message: str) -> bool:
    return "invalid login credentials" in message.lower()


def _is_already_registered(message: str) -> bool:
    return "already registered" in message.lower()
