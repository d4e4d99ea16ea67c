"""
Core module - Token security, rate limiting, cache control and exception handling.
"""
from wismon.core.security import (
    TokenAuthority,
    extract_token_from_header,
    refresh_cookie_options,
    validate_secret,
)
from wismon.core.cache_control import apply_no_cache, no_cache
from wismon.core.rate_limit import RateLimiter
from wismon.core.exception_handlers import register_exception_handlers

__all__ = [
    "TokenAuthority",
    "extract_token_from_header",
    "refresh_cookie_options",
    "validate_secret",
    "apply_no_cache",
    "no_cache",
    "RateLimiter",
    "register_exception_handlers",
]
