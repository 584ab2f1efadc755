# middleware.py
"""
Middleware for security headers and request logging.
"""
import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from procurement.core.logging import logger


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status, duration, actor and client IP."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        client_ip = request.client.host if request.client else None
        actor = request.headers.get("x-actor-id")

        response = await call_next(request)

        duration = time.perf_counter() - start
        logger.info(
            f"Request: {request.method} {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Duration: {duration:.3f}s | "
            f"Actor: {actor} | "
            f"IP: {client_ip}"
        )
        return response
