"""
SermonVault API application.

Routers are mounted under settings.API_PREFIX:

    /api/auth/*              login, registration, profile
    /api/upload              PDF upload → `uploaded` processing record
    /api/process-sermon/*    parse / vectorize / store stages
    /api/sermons/*           owner-scoped sermon CRUD
    /api/pdf                 presigned URL for a stored PDF
    /api/chat                streamed question answering
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from sermonvault.core.config import settings
from sermonvault.core.errors import RateLimitError, SermonVaultError
from sermonvault.core.logging import get_logger, setup_logging
from sermonvault.db.session import check_db_health, close_db, init_db

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup checks the database; shutdown disposes the engine.

    Model, embedding and storage clients are built on first use, so a
    missing API key only fails the routes that need it.
    """
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=settings.VERSION,
        anthropic_configured=bool(settings.ANTHROPIC_API_KEY),
        openai_configured=bool(settings.OPENAI_API_KEY),
        storage_bucket=settings.STORAGE_BUCKET,
    )

    await init_db()

    yield

    logger.info("shutting_down_application")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Sermon library and preaching-history assistant",
    version=settings.VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """Database connectivity plus which providers have credentials."""
    db_healthy = await check_db_health()

    return JSONResponse(
        status_code=status.HTTP_200_OK if db_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": settings.VERSION,
            "database": "connected" if db_healthy else "disconnected",
            "providers": {
                "anthropic": bool(settings.ANTHROPIC_API_KEY),
                "openai": bool(settings.OPENAI_API_KEY),
            },
        },
    )


@app.get("/", tags=["root"])
async def root() -> JSONResponse:
    return JSONResponse(
        content={
            "message": f"Welcome to {settings.APP_NAME} API",
            "version": settings.VERSION,
            "docs": "/docs" if settings.DEBUG else None,
        }
    )


from sermonvault.api import api_router  # noqa: E402
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.exception_handler(SermonVaultError)
async def sermonvault_exception_handler(request: Request, exc: SermonVaultError) -> JSONResponse:
    """
    Domain errors that a route did not translate itself.

    Provider quota errors stay distinguishable as 429; everything else is
    a 500 without internal details.
    """
    logger.error(
        "unhandled_domain_error",
        error=str(exc),
        error_type=type(exc).__name__,
        provider=exc.provider_name,
        path=request.url.path,
    )
    if isinstance(exc, RateLimitError):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Service temporarily unavailable"},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Request failed"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sermonvault.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
