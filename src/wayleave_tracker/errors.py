"""Error taxonomy for the wayleave tracker."""


class WayleaveError(Exception):
    """Base class for errors raised inside the wayleave tracker."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(WayleaveError):
    """The backend is missing or not configured."""

    def __init__(
        self, message: str = "Supabase is not configured. Set SUPABASE_URL and key."
    ) -> None:
        super().__init__(message)


class AuthenticationError(WayleaveError):
    """Sign-in, confirmation or provisioning failed."""


class BackendError(WayleaveError):
    """A store, storage or network call failed."""


class ValidationError(WayleaveError):
    """Input was missing or malformed."""
