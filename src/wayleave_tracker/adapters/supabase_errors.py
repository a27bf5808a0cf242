"""Helpers for turning Supabase client exceptions into messages."""


def error_message(exc: Exception) -> str:
    """Return the backend's own message for an exception when it has one."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    if exc.args and isinstance(exc.args[0], dict):
        detail = exc.args[0].get("message") or exc.args[0].get("error")
        if detail:
            return str(detail)
    return str(exc) or exc.__class__.__name__
