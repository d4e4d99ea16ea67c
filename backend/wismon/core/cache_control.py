"""
Cache-control headers for authentication-sensitive responses.

Prevents browsers and proxies from replaying stale auth responses after a
re-login.
"""
import secrets
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import MutableMapping

from fastapi import Response

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, private, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


def apply_no_cache(headers: MutableMapping[str, str], vary: str = "Authorization") -> None:
    """Set no-cache headers plus a unique ETag on a header mapping."""
    now = datetime.now(timezone.utc)
    headers.update(NO_CACHE_HEADERS)
    headers["Last-Modified"] = format_datetime(now, usegmt=True)
    headers["ETag"] = f'"{int(now.timestamp() * 1000)}-{secrets.token_hex(5)}"'
    headers["Vary"] = vary


async def no_cache(response: Response) -> None:
    """Dependency marking a route's response as uncacheable."""
    apply_no_cache(response.headers)
