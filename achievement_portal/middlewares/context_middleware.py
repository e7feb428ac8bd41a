import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    One log line per request, correlated by request id. ``call_next`` runs the
    endpoint in a copied context, so values bound there never come back here;
    the authenticated user is read from ``request.state`` instead, which shares
    the ASGI scope with the endpoint.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", user_id=getattr(request.state, "user_id", None),
                             duration_ms=_elapsed_ms(started))
            raise

        response.headers["X-Request-ID"] = request_id
        logger.info("Request handled", status_code=response.status_code,
                    user_id=getattr(request.state, "user_id", None), duration_ms=_elapsed_ms(started))
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
