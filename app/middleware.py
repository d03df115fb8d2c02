"""Application middleware for security headers, write throttling and request logging.

Middleware is added to the FastAPI application in reverse order, so the
outermost layer (CORS) runs first on the request path and last on the
response path. The order in main.py is:

    SecurityHeaders → Logging → RateLimit → GZip → CORS

Which means the actual request processing order is:

    CORS → GZip → RateLimit → Logging → SecurityHeaders → Route handler
"""

import logging
import time
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# File extensions considered static assets (matched by suffix).
_STATIC_EXTENSIONS = frozenset(
    (".css", ".js", ".ico", ".png", ".jpg", ".jpeg", ".svg", ".webp",
     ".woff2", ".woff", ".ttf", ".map", ".webmanifest")
)

# Reviews, image uploads and seeding are the only state-changing calls.
_WRITE_METHODS = frozenset(("POST", "PUT", "PATCH", "DELETE"))


def _is_static_asset(path: str) -> bool:
    """Return True if the request path is for a static file."""
    dot = path.rfind(".")
    return dot != -1 and path[dot:] in _STATIC_EXTENSIONS


def _is_event_stream(path: str) -> bool:
    return path.startswith("/api/") and path.endswith("/stream")


def _client_ip(request: Request) -> str:
    # Cloud Run appends the caller address as the last X-Forwarded-For entry.
    # Earlier entries come from the client and can be forged.
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[-1].strip()
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every response.

    Game images are served from Cloud Storage, so ``img-src`` allows the
    public storage hosts.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        h = response.headers
        h["X-Content-Type-Options"] = "nosniff"
        h["X-Frame-Options"] = "DENY"
        h["Referrer-Policy"] = "strict-origin-when-cross-origin"
        h["Permissions-Policy"] = "camera=(), microphone=(), geolocation=(), payment=()"
        h["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob: https://storage.googleapis.com "
            "https://firebasestorage.googleapis.com; "
            "connect-src 'self'; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'"
        )
        h["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        path = request.url.path
        if _is_static_asset(path):
            h["Cache-Control"] = "public, max-age=86400"
        elif path.startswith("/api/") and "cache-control" not in h:
            h["Cache-Control"] = "no-store"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP sliding-window limit on write requests.

    Catalog reads and live streams are not throttled. If the number of
    tracked IPs exceeds ``_MAX_TRACKED_IPS`` the least recently seen
    entries are evicted.
    """

    _MAX_TRACKED_IPS = 10_000

    def __init__(self, app, max_requests: int = 60, window_seconds: int = 60) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in _WRITE_METHODS:
            return await call_next(request)

        client_ip = _client_ip(request)
        now = time.monotonic()
        cutoff = now - self.window_seconds

        recent = [t for t in self._requests[client_ip] if t > cutoff]
        if len(recent) >= self.max_requests:
            self._requests[client_ip] = recent
            logger.warning("Write rate limit exceeded for %s on %s", client_ip, request.url.path)
            return JSONResponse(
                {"detail": "Too many submissions. Please wait before retrying."},
                status_code=429,
                headers={"Retry-After": str(self.window_seconds)},
            )
        recent.append(now)
        self._requests[client_ip] = recent

        if len(self._requests) > self._MAX_TRACKED_IPS:
            by_last_seen = sorted(self._requests, key=lambda k: self._requests[k][-1])
            for key in by_last_seen[: len(self._requests) - self._MAX_TRACKED_IPS]:
                del self._requests[key]

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and latency for API calls.

    Event streams are logged when they open, since their latency is the
    lifetime of the connection. Extracts the ``x-cloud-trace-context``
    header propagated by Cloud Run.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if _is_static_asset(path):
            return await call_next(request)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        trace_header = request.headers.get("x-cloud-trace-context", "")
        trace_id = trace_header.split("/")[0] if trace_header else ""
        logger.info(
            "%s %s -> %d (%.1fms%s) trace=%s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            ", stream opened" if _is_event_stream(path) else "",
            trace_id or "none",
        )
        return response
