"""
Union site - HTTP Middleware
"""

import time
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from unionsite.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)

QUIET_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")
SLOW_REQUEST_MS = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per API call, tagged with a request id.

    The id comes from the caller's X-Request-ID header when present and is
    echoed back together with X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        path = request.url.path
        quiet = path.startswith(QUIET_PATHS)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"✗ {request.method} {path} raised {type(exc).__name__} after {elapsed:.0f}ms",
                exc_info=True,
                extra={"http_method": request.method, "http_path": path, "duration_ms": elapsed},
            )
            raise
        finally:
            set_user_id("")

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"

        if not quiet:
            status_code = response.status_code
            if status_code >= 500:
                log = logger.error
            elif status_code >= 400 or elapsed > SLOW_REQUEST_MS:
                log = logger.warning
            else:
                log = logger.info
            log(
                f"{request.method} {path} → {status_code} ({elapsed:.0f}ms)",
                extra={
                    "http_method": request.method,
                    "http_path": path,
                    "http_status": status_code,
                    "duration_ms": elapsed,
                    "client_ip": request.client.host if request.client else None,
                },
            )

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """nosniff, referrer policy and no framing on every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Frame-Options"] = "DENY"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies over `max_size`; posts carry base64 attachments inline"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(
                f"Rejected {declared}-byte body on {request.url.path} (limit {self.max_size})",
                extra={"http_path": request.url.path, "content_length": int(declared)},
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "detail": f"Request body too large (max {self.max_size // (1024 * 1024)}MB)",
                    "error": {"code": "PAYLOAD_TOO_LARGE", "message": "Request body too large", "details": {}},
                },
            )

        return await call_next(request)
