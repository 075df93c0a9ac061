from collections.abc import Callable

import structlog
from starlette.requests import Request

from secretshare.context import AppContext
from secretshare.errors import RateLimitedError

logger = structlog.get_logger()


def get_real_client_ip(request: Request) -> str:
    """Extract real client IP, trusting X-Forwarded-For from our proxy.

    When behind a reverse proxy, the client's real IP is in the
    X-Forwarded-For header. We take the first IP (original client).
    Falls back to request.client.host for direct connections.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(route_name: str) -> Callable[[Request], None]:
    """
    Build a FastAPI dependency enforcing the per-minute and per-hour limits of a route.

    Backend failures admit the request: rate limiting is optional and must not take
    the service down with it.
    """

    def check_rate_limit(request: Request) -> None:
        context: AppContext = request.app.state.context
        limiter = context.rate_limiter
        if not context.settings.rate_limit_enabled or limiter is None:
            return

        limits = context.settings.limits_for(route_name)
        try:
            allowed = limiter.allow(
                get_real_client_ip(request),
                route_name,
                limits.requests_per_hour,
                limits.requests_per_minute,
            )
        except Exception as e:
            logger.error("rate_limit_check_failed", route=route_name, error=str(e))
            return

        if not allowed:
            logger.warning("rate_limit_exceeded", route=route_name)
            raise RateLimitedError()

    return check_rate_limit
