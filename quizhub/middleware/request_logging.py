"""
Request/response logging middleware with request id correlation.
"""
import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from quizhub.core.logging_config import request_id_context
from quizhub.core.security import decode_token

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _user_identifier(request: Request) -> str:
    """
    Best-effort caller label for logs.

    The token is only decoded here, never trusted: authorization happens in
    the route dependencies.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return "anonymous"
    payload = decode_token(auth_header[7:])
    if payload and payload.get("user_id"):
        return f"user:{payload['user_id']}"
    return "invalid-token"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request and its response.

    Assigns an X-Request-ID (or keeps the caller's) so all log lines of one
    request can be correlated, and echoes it back on the response.
    """

    def __init__(self, app, skip_paths: tuple = ("/health", "/ping")):
        super().__init__(app)
        self.skip_paths = skip_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_context.set(request_id)

        path = str(request.url.path)
        if path.endswith(self.skip_paths):
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        start_time = time.time()
        method = request.method
        client_host = request.client.host if request.client else "unknown"
        user_identifier = _user_identifier(request)

        logger.info(
            "Incoming request",
            extra={
                "method": method,
                "path": path,
                "client_host": client_host,
                "user_identifier": user_identifier,
            },
        )

        response = await call_next(request)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        status_code = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id

        extra_fields = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_host": client_host,
            "user_identifier": user_identifier,
        }

        if status_code >= 500:
            logger.error("Server error response", extra=extra_fields)
        elif status_code >= 400:
            logger.warning("Client error response", extra=extra_fields)
        else:
            logger.info("Request completed", extra=extra_fields)

        return response
