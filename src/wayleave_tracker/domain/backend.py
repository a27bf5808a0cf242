"""Result types returned by backend adapters."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """Outcome of a backend call: data on success, an error message otherwise."""

    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the call did not report an error."""
        return self.error is None


@dataclass(frozen=True)
class AuthUser:
    """Identity returned by the authentication service."""

    id: str
    email: str | None


@dataclass(frozen=True)
class SignInResult:
    """Outcome of a password sign-in."""

    user: AuthUser | None = None
    error: str | None = None


@dataclass(frozen=True)
class SignUpResult:
    """Outcome of creating a new identity.

    ``has_session`` is False when the backend requires a confirmation step
    before the new identity can sign in.
    """

    user: AuthUser | None = None
    has_session: bool = False
    error: str | None = None
