"""
Error taxonomy for the database and authentication core.

Every error carries a stable machine-readable ``reason`` so the HTTP layer
can pick a status code without looking at the message text.
"""
from typing import Optional


class WismonError(Exception):
    """Base class for all errors raised by the core."""

    reason = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(WismonError):
    """Missing or invalid configuration. Fatal at startup."""

    reason = "configuration_error"

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])

    @classmethod
    def for_missing(cls, missing: list[str]) -> "ConfigurationError":
        return cls(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Database connections cannot be established without proper credentials.",
            missing=missing,
        )


class ConnectivityError(WismonError):
    """A database could not be reached after the full retry budget."""

    reason = "database_unavailable"

    def __init__(self, message: str, databases: Optional[list[str]] = None):
        super().__init__(message)
        self.databases = list(databases or [])


class QueryError(WismonError):
    """A query failed after all permitted attempts."""

    reason = "query_failed"

    def __init__(
        self,
        database: str,
        attempts: int,
        cause: BaseException,
        message: Optional[str] = None,
    ):
        super().__init__(
            message
            or f"{database} Database query failed after {attempts} attempts: {cause}"
        )
        self.database = database
        self.attempts = attempts
        self.cause = cause


class QueryTimeoutError(QueryError):
    """A query did not settle before its timeout."""

    reason = "query_timeout"

    def __init__(self, database: str, attempts: int, timeout: float):
        cause = TimeoutError(f"Query timeout after {timeout:g}s")
        super().__init__(
            database,
            attempts,
            cause,
            message=f"{database} Database query timeout after {timeout:g}s",
        )
        self.timeout = timeout


class TokenError(WismonError):
    """Base class for token rejections."""

    reason = "token_invalid"
    kind = "invalid"


class TokenMissingError(TokenError):
    reason = "token_missing"
    kind = "missing"


class TokenExpiredError(TokenError):
    reason = "token_expired"
    kind = "expired"


class TokenInvalidError(TokenError):
    """Malformed token, bad signature, or wrong issuer/audience."""

    reason = "token_invalid"
    kind = "invalid"


class TokenWrongTypeError(TokenInvalidError):
    """A well-formed token presented where the other token type is expected."""

    kind = "wrong_type"

    def __init__(self, message: str, expected: str, actual: Optional[str]):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class SubjectNotFoundError(WismonError):
    """The token subject no longer resolves to a live record."""

    reason = "subject_not_found"


class AuthenticationError(WismonError):
    """Login credentials did not match any student."""

    reason = "invalid_credentials"


class RateLimitedError(WismonError):
    """Too many requests from one client inside the current window."""

    reason = "rate_limited"

    def __init__(self, message: str, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after
