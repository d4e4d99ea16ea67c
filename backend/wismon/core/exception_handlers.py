"""
Maps core errors to HTTP responses by their ``reason`` tag.
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from wismon.core.cache_control import apply_no_cache
from wismon.errors import RateLimitedError, TokenError, WismonError

logger = logging.getLogger(__name__)

STATUS_BY_REASON = {
    "token_missing": status.HTTP_401_UNAUTHORIZED,
    "token_expired": status.HTTP_401_UNAUTHORIZED,
    "token_invalid": status.HTTP_403_FORBIDDEN,
    "subject_not_found": status.HTTP_401_UNAUTHORIZED,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "query_timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    "query_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "database_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "configuration_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
}


def status_for(error: WismonError) -> int:
    return STATUS_BY_REASON.get(error.reason, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_body(error: WismonError) -> dict:
    return {
        "success": False,
        "message": error.message,
        "errorType": error.reason,
        "errors": [error.message],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def wismon_error_handler(request: Request, exc: WismonError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    response = JSONResponse(status_code=status_code, content=error_body(exc))
    if isinstance(exc, TokenError):
        apply_no_cache(response.headers)
        response.headers["X-Auth-Error"] = exc.reason
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WismonError, wismon_error_handler)
