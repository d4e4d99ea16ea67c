"""
Access/refresh token issuance and verification.

Access tokens are short-lived and authorise API requests; refresh tokens are
long-lived and only mint new pairs. Each type is signed with its own secret
and carries an explicit ``type`` claim so the two are never interchangeable.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from wismon.config import Settings
from wismon.errors import (
    ConfigurationError,
    TokenExpiredError,
    TokenInvalidError,
    TokenWrongTypeError,
)
from wismon.schemas.auth import SubjectClaims, TokenPair, TokenPayload

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

MIN_SECRET_LENGTH = 32

REFRESH_COOKIE_NAME = "refreshToken"


def validate_secret(name: str, value: Optional[str]) -> str:
    """
    Ensure a signing secret is present and long enough.

    Raises:
        ConfigurationError: If the secret is absent or shorter than 32 characters
    """
    if not value:
        raise ConfigurationError(
            f"SECURITY ERROR: {name} environment variable is required",
            missing=[name],
        )
    if len(value) < MIN_SECRET_LENGTH:
        raise ConfigurationError(
            f"SECURITY ERROR: {name} must be at least {MIN_SECRET_LENGTH} characters long",
            missing=[name],
        )
    return value


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    """
    Extract a bearer token from an Authorization header value.

    Returns None for a missing header, a scheme other than ``Bearer``, the
    wrong number of parts, or an empty token.
    """
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1] or None


def refresh_cookie_options(environment: str, max_age_days: int = 30) -> dict[str, Any]:
    """Cookie attributes for delivering the refresh token."""
    is_production = environment == "production"
    return {
        "httponly": True,
        "secure": is_production,
        "samesite": "strict" if is_production else "lax",
        "max_age": max_age_days * 24 * 60 * 60,
        "path": "/",
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthority:
    """Issues, verifies and rotates access/refresh token pairs."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        issuer: str = "wismon-api",
        audience: str = "wismon-client",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._access_secret = validate_secret("JWT_SECRET", access_secret)
        self._refresh_secret = validate_secret("JWT_REFRESH_SECRET", refresh_secret)
        if self._access_secret == self._refresh_secret:
            raise ConfigurationError(
                "SECURITY ERROR: JWT_SECRET and JWT_REFRESH_SECRET must differ",
                missing=["JWT_REFRESH_SECRET"],
            )
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenAuthority":
        authority = cls(
            settings.jwt_secret,
            settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
        )
        logger.info("JWT security environment validation passed")
        return authority

    @property
    def access_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_ttl.total_seconds())

    def _secret_for(self, token_type: str) -> str:
        return self._access_secret if token_type == ACCESS else self._refresh_secret

    def _encode(self, claims: SubjectClaims, token_type: str, ttl: timedelta, **extra: Any) -> str:
        now = self._clock()
        payload = {
            **claims.model_dump(),
            **extra,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(payload, self._secret_for(token_type), algorithm=self.algorithm)

    def generate_access_token(self, claims: SubjectClaims) -> str:
        return self._encode(claims, ACCESS, self.access_ttl)

    def generate_refresh_token(self, claims: SubjectClaims) -> str:
        token_id = secrets.token_hex(16)
        return self._encode(claims, REFRESH, self.refresh_ttl, tokenId=token_id)

    def generate_token_pair(self, claims: SubjectClaims) -> TokenPair:
        """Issue a fresh access token and a fresh refresh token for a subject."""
        return TokenPair(
            access_token=self.generate_access_token(claims),
            refresh_token=self.generate_refresh_token(claims),
        )

    def _verify(self, token: str, expected: str) -> TokenPayload:
        label = expected.capitalize()
        try:
            payload = jwt.decode(
                token,
                self._secret_for(expected),
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError(f"{label} token expired") from None
        except JWTError:
            actual = self._unverified_type(token)
            if actual in (ACCESS, REFRESH) and actual != expected:
                raise TokenWrongTypeError(
                    "Invalid token type", expected=expected, actual=actual
                ) from None
            raise TokenInvalidError(f"Invalid {expected} token") from None

        actual = payload.get("type")
        if actual != expected:
            raise TokenWrongTypeError("Invalid token type", expected=expected, actual=actual)

        try:
            return TokenPayload(**payload)
        except ValueError:
            raise TokenInvalidError(f"Invalid {expected} token payload") from None

    @staticmethod
    def _unverified_type(token: str) -> Optional[str]:
        try:
            return jwt.get_unverified_claims(token).get("type")
        except JWTError:
            return None

    def verify_access_token(self, token: str) -> TokenPayload:
        """
        Verify an access token.

        Raises:
            TokenExpiredError: If the token is past its expiry
            TokenWrongTypeError: If the token is a refresh token
            TokenInvalidError: If the token is malformed or badly signed
        """
        return self._verify(token, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        """
        Verify a refresh token.

        Raises:
            TokenExpiredError: If the token is past its expiry
            TokenWrongTypeError: If the token is an access token
            TokenInvalidError: If the token is malformed or badly signed
        """
        return self._verify(token, REFRESH)
