from __future__ import annotations

import json
import logging
from typing import Callable

from fastapi import Request

from auth_service.core.config import settings
from auth_service.core.errors import RateLimitError
from auth_service.services.rate_limiter import RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many attempts, please try again later."


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def require_rate_limit(
    route_key: str,
    *,
    limit: int | None = None,
    window_seconds: int | None = None,
) -> Callable:
    async def dependency(request: Request) -> None:
        resolved_limit = max(1, limit or settings.AUTH_RATE_LIMIT_MAX_REQUESTS)
        resolved_window = max(1, window_seconds or settings.AUTH_RATE_LIMIT_WINDOW_SECONDS)

        limiter = get_rate_limiter(request)
        identifier = _resolve_identifier(request)
        result = limiter.check(
            identifier=identifier,
            route_key=route_key,
            limit=resolved_limit,
            window_seconds=resolved_window,
        )
        _log_decision(request=request, result=result, route_key=route_key, identifier=identifier)
        if not result.allowed:
            retry_after = max(1, result.retry_after_seconds)
            raise RateLimitError(
                RATE_LIMIT_MESSAGE,
                details={
                    "retry_after_seconds": retry_after,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
                headers={"Retry-After": str(retry_after)},
            )

    return dependency


def _resolve_identifier(request: Request) -> str:
    client = request.client
    host = (client.host if client else None) or "unknown"
    return f"ip:{host}"


def _log_decision(*, request: Request, result: RateLimitResult, route_key: str, identifier: str) -> None:
    payload = {
        "identifier": identifier,
        "route": request.url.path,
        "http_method": request.method,
        "route_key": route_key,
        "limiter_key": result.limiter_key,
        "window_seconds": result.window_seconds,
        "limit": result.limit,
        "current_count": result.count,
        "remaining": result.remaining,
        "reset_epoch": result.window_reset_epoch,
        "decision": "allow" if result.allowed else "block",
    }
    logger.info(json.dumps(payload, separators=(",", ":")))
