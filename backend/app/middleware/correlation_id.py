"""
Correlation ID middleware for request tracing with structured logging
"""
import ipaddress
import uuid
import time
import logging
from typing import Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.utils.logger import context_filter

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def parse_ip(value: Optional[str]) -> Optional[str]:
    """
    Normalized IPv4/IPv6 address, or None if value is not one
    """
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def client_address(request: Request) -> Optional[str]:
    """
    Originating client address, honouring proxy headers

    Header values that are not valid IP addresses are ignored.
    """
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0]
    for candidate in (forwarded, request.headers.get("X-Real-IP")):
        address = parse_ip(candidate)
        if address:
            return address
    return request.client.host if request.client else None


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation ID and the client address.

    Both are kept on request.state for audit entries and pushed into the
    logging context; request start and completion are logged with timing.
    """

    # Paths to skip detailed logging
    SKIP_PATHS = {
        "/",
        "/api/docs",
        "/api/redoc",
        "/api/openapi.json",
        "/api/v1/health/health",
    }

    async def dispatch(self, request: Request, call_next):
        correlation_id = (request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4()))[:64]
        client_ip = client_address(request)

        request.state.correlation_id = correlation_id
        request.state.client_ip = client_ip

        context_filter.set_context(
            request_id=correlation_id,
            client_ip=client_ip,
            method=request.method,
            endpoint=request.url.path
        )

        path = request.url.path
        verbose = path not in self.SKIP_PATHS
        start_time = time.perf_counter()

        if verbose:
            logger.info(
                f"Request started: {request.method} {path}",
                extra={
                    "query_params": str(request.query_params) if request.query_params else None,
                    "user_agent": request.headers.get("User-Agent", "")[:100]
                }
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {path} - {type(e).__name__}",
                extra={"duration_ms": round((time.perf_counter() - start_time) * 1000, 2)},
                exc_info=True
            )
            raise
        else:
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers[CORRELATION_HEADER] = correlation_id
            response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.2f}"

            if verbose:
                logger.log(
                    logging.WARNING if response.status_code >= 400 else logging.INFO,
                    f"Request completed: {request.method} {path} - {response.status_code}",
                    extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 2)}
                )
            return response
        finally:
            context_filter.clear_context()
