# src/tablerank/middleware/logging.py

"""Request/response logging middleware for the TableRank API."""

import logging
import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("tablerank.api")

REQUEST_ID_HEADER = "X-Request-ID"
PLAYER_ID_HEADER = "X-Player-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its acting player, outcome and duration.

    An incoming X-Request-ID is reused so a retried match submission can be
    correlated with the failed attempt; otherwise a short ID is generated.
    The ID is echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        acting_player = request.headers.get(PLAYER_ID_HEADER, "-")
        started = time.perf_counter()

        logger.debug(
            "[%s] %s %s by %s",
            request_id,
            request.method,
            request.url.path,
            acting_player,
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "acting_player": acting_player,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                "[%s] %s %s -> ERROR (%.2fms): %s",
                request_id,
                request.method,
                request.url.path,
                elapsed_ms,
                e,
                extra={"request_id": request_id, "acting_player": acting_player},
                exc_info=True,
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        # Reads at DEBUG, writes at INFO
        level = logging.DEBUG if request.method == "GET" else logging.INFO
        logger.log(
            level,
            "[%s] %s %s -> %d (%.2fms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "request_id": request_id,
                "acting_player": acting_player,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response  # type: ignore[no-any-return]
