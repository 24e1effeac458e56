class SessionError(Exception):
    """Base class for session errors. `code` is stable for programmatic checks."""

    def __init__(self, message: str, code: str = "SESSION_ERROR") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(SessionError):
    """Raised when the session configuration is unusable (missing/short secret)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR")


class CookieError(SessionError):
    """Raised when a session cookie cannot be produced."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "COOKIE_ERROR")
