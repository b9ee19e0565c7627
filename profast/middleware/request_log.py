import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("profast.access")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "%s %s -> unhandled error (%sms) cid=%s",
                request.method, request.url.path, int((time.time() - start) * 1000), correlation_id,
            )
            raise
        latency_ms = int((time.time() - start) * 1000)
        response.headers["X-Correlation-ID"] = correlation_id

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        logger.log(
            level,
            "%s %s -> %s (%sms) cid=%s",
            request.method, request.url.path, response.status_code, latency_ms, correlation_id,
        )
        return response
