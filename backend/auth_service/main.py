from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from auth_service.core.config import settings, require_jwt_secret
from auth_service.core.database import Database
from auth_service.core.errors import AppError
from auth_service.core.log_config import configure_logging
from auth_service.core.middleware import register_access_log_middleware, register_security_headers_middleware
from auth_service.routes.auth import router as auth_router
from auth_service.schemas.auth import HealthOut
from auth_service.services.rate_limiter import RateLimiter, build_rate_limiter

logger = logging.getLogger(__name__)

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


def app_error_handler(request: Request, exc: AppError):  # noqa: ARG001
    if exc.status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=exc.headers)


def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": _error_code(exc.status_code), "message": message},
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "Internal server error"},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # Drop pydantic's "input"/"ctx" so submitted passwords are never echoed back.
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")} for err in exc.errors()]


def create_app(
    *,
    database: Database | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """
    Build the application.

    `database` / `rate_limiter` default to ones derived from settings; tests inject their own.
    """
    require_jwt_secret()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db: Database = app.state.database
        # A pool initialized by the caller stays owned by the caller.
        owns_pool = not db.is_initialized
        if owns_pool:
            logger.info("Database connection config (no password): %s", settings.safe_database_summary())
            db.init()
        try:
            yield
        finally:
            if owns_pool:
                db.dispose()

    app = FastAPI(title="Session Auth Service", lifespan=lifespan)
    app.state.database = database or Database(settings.database_url)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings.RATE_LIMIT_ENABLED)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Innermost middleware: route errors become a 500 body here, so the
    # security headers and access log below still wrap the response.
    @app.middleware("http")
    async def unhandled_error_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return unhandled_exception_handler(request, exc)

    if settings.SECURITY_HEADERS_ENABLED:
        register_security_headers_middleware(app, hsts=settings.is_prod)
    register_access_log_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(auth_router)

    @app.get("/health", response_model=HealthOut)
    def health_check():
        return {"status": "ok", "env": settings.ENV}

    logger.info(
        "Startup config: ENV=%s CORS_ORIGINS=%s RATE_LIMIT_ENABLED=%s token_ttl_minutes=%s",
        settings.ENV,
        settings.CORS_ORIGINS,
        settings.RATE_LIMIT_ENABLED,
        settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    return app


def run() -> None:
    """Entry point; equivalent to `uvicorn auth_service.main:create_app --factory`."""
    import uvicorn

    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
