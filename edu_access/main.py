import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.domain.exceptions import (AuditWriteFailedError,
                                          AuthenticationException,
                                          EduAccessException, ForbiddenError,
                                          InvalidGrantSpecError,
                                          ResourceNotFoundException,
                                          RestoreWindowExpiredError,
                                          StoreUnavailableError,
                                          ValidationException)
from edu_access.infrastructure.cache.redis_cache import CacheService
from edu_access.infrastructure.config.settings import get_settings
from edu_access.infrastructure.persistence.database import engine, get_db
from edu_access.presentation.api.dependencies import (get_cache_service,
                                                      set_cache_service)
from edu_access.presentation.api.v1.routes import (audit_logs, menu,
                                                   permissions, records)
from edu_access.shared.context import clear_current_actor
from edu_access.shared.logging import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()

_STATUS_CODES: dict[type[EduAccessException], int] = {
    ValidationException: status.HTTP_400_BAD_REQUEST,
    AuthenticationException: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ResourceNotFoundException: status.HTTP_404_NOT_FOUND,
    RestoreWindowExpiredError: status.HTTP_409_CONFLICT,
    InvalidGrantSpecError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuditWriteFailedError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()

    # Database schema is managed by migrations, not created here

    if settings.redis_enabled:
        cache_service = CacheService()
        await cache_service.connect()
        set_cache_service(cache_service)
    else:
        logger.info("Redis cache disabled in configuration")

    yield

    cache = await get_cache_service()
    await cache.disconnect()

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Security: Using allow_credentials=True requires specific origins (not wildcard)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reset_actor_context(request: Request, call_next):
    """Actor identity never leaks from one request into the next"""
    clear_current_actor()
    try:
        return await call_next(request)
    finally:
        clear_current_actor()


@app.exception_handler(EduAccessException)
async def edu_access_exception_handler(request: Request, exc: EduAccessException):
    status_code = next(
        (code for exc_type, code in _STATUS_CODES.items() if isinstance(exc, exc_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    if status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationException) else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


# Routers
app.include_router(menu.router, prefix="/menu", tags=["menu"])
app.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])
app.include_router(records.router, prefix="/records", tags=["records"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint for load balancers and monitoring.

    Returns:
    - 200 OK if the API and database respond
    - 503 Service Unavailable otherwise (the cache is optional)
    """
    checks: dict[str, Any] = {
        "api": True,
        "database": False,
        "cache": None,  # None = not configured, True = healthy, False = unhealthy
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Health check database query failed: {e}")
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "checks": checks}
        )

    if settings.redis_enabled:
        cache = await get_cache_service()
        checks["cache"] = cache.is_available()

    return {"status": "healthy", "checks": checks}
