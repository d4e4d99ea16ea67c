"""
Authentication dependencies for route protection.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, Request

from wismon.config import Settings
from wismon.core.rate_limit import RateLimiter
from wismon.core.security import TokenAuthority, extract_token_from_header
from wismon.database.connections import ConnectionManager
from wismon.errors import TokenError, TokenInvalidError, TokenMissingError
from wismon.schemas.auth import TokenPayload
from wismon.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_connection_manager(request: Request) -> ConnectionManager:
    """The connection manager built in the application lifespan."""
    return request.app.state.db


def get_token_authority(request: Request) -> TokenAuthority:
    """The token authority built in the application lifespan."""
    return request.app.state.tokens


def get_auth_service(
    db: Annotated[ConnectionManager, Depends(get_connection_manager)],
    tokens: Annotated[TokenAuthority, Depends(get_token_authority)],
) -> AuthService:
    return AuthService(db, tokens)


async def get_current_student(
    request: Request,
    tokens: Annotated[TokenAuthority, Depends(get_token_authority)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> TokenPayload:
    """
    Dependency resolving the authenticated student from a Bearer token.

    Raises:
        TokenMissingError: If no usable Bearer token was sent
        TokenExpiredError: If the access token expired
        TokenInvalidError: If the token is malformed, badly signed or a refresh token
    """
    client = request.client.host if request.client else "unknown"
    token = extract_token_from_header(authorization)
    if token is None:
        raise TokenMissingError("Access token required")

    try:
        payload = tokens.verify_access_token(token)
    except TokenError as e:
        logger.warning("Authentication failed: %s - IP: %s", e.message, client)
        raise

    if not payload.nrm or not payload.nim or not payload.namam:
        logger.warning("Authentication failed: token missing user information - IP: %s", client)
        raise TokenInvalidError("Invalid token payload")

    return payload


# Type alias for cleaner route signatures
CurrentStudent = Annotated[TokenPayload, Depends(get_current_student)]
