"""
Authentication router for login, token refresh, profile and logout.

Login and refresh are rate limited per client IP (5 and 10 requests per
15 minutes by default); limits are off in development unless
RATE_LIMIT_ENABLED is set.
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Cookie, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from wismon.config import Settings
from wismon.core.cache_control import apply_no_cache, no_cache
from wismon.core.exception_handlers import error_body
from wismon.core.rate_limit import RateLimiter
from wismon.core.security import REFRESH_COOKIE_NAME, refresh_cookie_options
from wismon.dependencies.auth import (
    CurrentStudent,
    get_app_settings,
    get_auth_service,
    get_rate_limiter,
)
from wismon.errors import RateLimitedError, SubjectNotFoundError, TokenError, TokenMissingError
from wismon.schemas.auth import ApiResponse, LoginRequest, RefreshRequest
from wismon.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def is_mobile_client(request: Request) -> bool:
    """Non-browser clients cannot read httpOnly cookies and get the token in the body."""
    user_agent = request.headers.get("User-Agent", "")
    return "Mozilla" not in user_agent and "Chrome" not in user_agent


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _enforce_rate_limit(
    request: Request,
    limiter: RateLimiter,
    endpoint: str,
    limit: int,
    window_seconds: int,
    message: str,
) -> None:
    client_ip = get_client_ip(request)
    if not await limiter.check_rate_limit(client_ip, endpoint, limit=limit, window_seconds=window_seconds):
        logger.warning("Rate limit exceeded on %s - IP: %s", endpoint, client_ip)
        raise RateLimitedError(message, retry_after=limiter.retry_after(client_ip, endpoint))


def _set_refresh_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        token,
        **refresh_cookie_options(settings.environment, settings.jwt_refresh_token_expire_days),
    )


@router.post(
    "/login",
    response_model=ApiResponse,
    summary="Student login",
    dependencies=[Depends(no_cache)],
)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
):
    """
    Authenticate with NIM or full name plus NRM.

    The refresh token is set as an httpOnly cookie; non-browser clients also
    receive it in the response body.

    **Rate limited**: 5 attempts per 15 minutes per IP.
    """
    if settings.rate_limiting_enabled:
        await _enforce_rate_limit(
            request,
            limiter,
            "/api/auth/login",
            settings.login_rate_limit_attempts,
            settings.login_rate_limit_window_seconds,
            "Too many login attempts, please try again later",
        )

    result = await auth_service.login(body)
    _set_refresh_cookie(response, result.tokens.refresh_token, settings)

    data = {
        "accessToken": result.tokens.access_token,
        "user": result.user.model_dump(mode="json"),
        "expiresIn": result.expires_in,
    }
    if is_mobile_client(request):
        data["refreshToken"] = result.tokens.refresh_token

    return ApiResponse(message="Login successful", data=data)


@router.post(
    "/refresh",
    response_model=ApiResponse,
    summary="Rotate the token pair",
    dependencies=[Depends(no_cache)],
)
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    body: Annotated[Optional[RefreshRequest], Body()] = None,
    cookie_token: Annotated[Optional[str], Cookie(alias=REFRESH_COOKIE_NAME)] = None,
):
    """
    Exchange a refresh token (cookie first, then body) for a brand new pair.

    Any rejection clears the refresh cookie and asks the client to log in again.
    """
    if settings.rate_limiting_enabled:
        await _enforce_rate_limit(
            request,
            limiter,
            "/api/auth/refresh",
            settings.refresh_rate_limit_attempts,
            settings.refresh_rate_limit_window_seconds,
            "Too many refresh attempts, please try again later",
        )

    token = cookie_token or (body.refreshToken if body else None)
    try:
        if not token:
            raise TokenMissingError("Refresh token required")
        tokens = await auth_service.refresh_tokens(token)
    except (TokenError, SubjectNotFoundError) as e:
        logger.warning("Refresh token validation failed: %s - IP: %s", e.message, get_client_ip(request))
        content = error_body(e)
        content["errors"] = ["Please login again"]
        rejected = JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=content)
        apply_no_cache(rejected.headers)
        rejected.delete_cookie(REFRESH_COOKIE_NAME, path="/")
        return rejected

    _set_refresh_cookie(response, tokens.refresh_token, settings)
    data = {
        "accessToken": tokens.access_token,
        "expiresIn": auth_service.tokens.access_expires_in,
    }
    if is_mobile_client(request):
        data["refreshToken"] = tokens.refresh_token

    return ApiResponse(message="Tokens refreshed successfully", data=data)


@router.get(
    "/profile",
    response_model=ApiResponse,
    summary="Get current student profile",
    dependencies=[Depends(no_cache)],
)
async def get_profile(
    current_student: CurrentStudent,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Profile of the authenticated student, read fresh from the registry."""
    student = await auth_service.get_student_profile(current_student.nrm)
    if student is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "success": False,
                "message": "Student profile not found",
                "errors": ["Student data not found"],
            },
        )
    return ApiResponse(
        message="Profile retrieved successfully",
        data=student.model_dump(mode="json", exclude={"kdagama"}),
    )


@router.post(
    "/verify",
    response_model=ApiResponse,
    summary="Verify an access token",
    dependencies=[Depends(no_cache)],
)
async def verify_token(current_student: CurrentStudent):
    """Succeeds only for a valid, unexpired access token."""
    return ApiResponse(
        message="Access token is valid",
        data={
            "nrm": current_student.nrm,
            "nim": current_student.nim,
            "namam": current_student.namam,
            "tokenType": current_student.type,
        },
    )


@router.post(
    "/logout",
    response_model=ApiResponse,
    summary="Clear the refresh token cookie",
    dependencies=[Depends(no_cache)],
)
async def logout(request: Request, response: Response):
    """
    Clear the refresh cookie.

    Tokens are stateless, so an already-issued refresh token stays valid until
    it expires.
    """
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/")
    response.headers["Clear-Site-Data"] = '"cache"'
    logger.info("User logged out - IP: %s", get_client_ip(request))
    return ApiResponse(message="Logged out successfully")
