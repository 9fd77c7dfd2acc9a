from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from biocms.core.config import settings
from biocms.core.database import init_db, close_db
from biocms.core.exceptions import BioCMSError, RateLimitedError
from biocms.core.logging_config import logger
from biocms.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from biocms.core.cache import ResponseCacheMiddleware, create_response_cache
from biocms.core.rate_limiter import RateLimiter, RateLimitMiddleware
from biocms.core.responses import GENERIC_FAULT_MESSAGE, error_response
from biocms.api.v1.router import api_router
import biocms.models  # noqa: F401  Import models so metadata knows about them

INSECURE_SECRETS = {"", "CHANGE_ME", "changeme", "secret"}


async def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if settings.SECRET_KEY in INSECURE_SECRETS:
        errors.append("SECRET_KEY is not set or using default value")

    if settings.JWT_SECRET_KEY in INSECURE_SECRETS:
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if settings.CACHE_BACKEND == "redis" and not settings.REDIS_URL:
        warnings.append("CACHE_BACKEND is redis but REDIS_URL is not set - using in-memory cache")

    if not (settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD):
        warnings.append("SMTP not configured - password reset and newsletter emails will not be sent")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Version: {settings.API_VERSION}")
    logger.info("=" * 60)

    await validate_critical_config()

    await init_db()
    logger.info("[Startup] Database tables ready")

    app.state.response_cache.start_sweep_task()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await app.state.response_cache.close()
    await close_db()


def validation_errors(exc: RequestValidationError) -> list:
    """Flatten pydantic errors into {field, message} pairs"""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location) or None,
            "message": error.get("msg", "Invalid value"),
        })
    return errors


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Biography content management API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        redirect_slashes=False
    )

    # Shared services
    app.state.rate_limiter = RateLimiter()
    app.state.response_cache = create_response_cache()

    # Add middleware (order matters - last added runs first)
    # 1. CORS - Origins from CORS_ORIGINS_STR in .env
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID", "X-Response-Time", "X-Cache",
            "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After",
        ],
    )

    # 2. Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # 3. Request size limit
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)

    # 4. Response cache for anonymous GETs
    if settings.CACHE_ENABLED:
        app.add_middleware(ResponseCacheMiddleware)

    # 5. Rate limiting, before caching and authentication
    app.add_middleware(RateLimitMiddleware)

    # 6. Request logging (runs first for all requests)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT
        }

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "docs": "/docs",
            "api": f"/api/{settings.API_VERSION}"
        }

    app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")
    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the error envelope"""

    @app.exception_handler(BioCMSError)
    async def biocms_error_handler(request: Request, exc: BioCMSError):
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}

        if exc.is_operational:
            errors = None
            if exc.details.get("field"):
                errors = [{"field": exc.details["field"], "message": exc.message}]
            return error_response(exc.status_code, exc.message, code=exc.code, errors=errors, headers=headers)

        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}", error_code=exc.code)
        return error_response(exc.status_code, GENERIC_FAULT_MESSAGE, code=exc.code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = validation_errors(exc)
        message = errors[0]["message"] if len(errors) == 1 else "Invalid input data"
        return error_response(400, message, code="VALIDATION_ERROR", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            return error_response(exc.status_code, GENERIC_FAULT_MESSAGE)
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = f"Can't find {request.url.path} on this server!"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
        return error_response(500, GENERIC_FAULT_MESSAGE, code="DATABASE_ERROR")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return error_response(500, GENERIC_FAULT_MESSAGE)


app = create_app()


def run():
    """Serve the API with uvicorn"""
    import uvicorn

    uvicorn.run(
        "biocms.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.is_dev_mode()
    )


if __name__ == "__main__":
    run()
