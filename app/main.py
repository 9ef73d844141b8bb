# app/main.py
"""
Application entrypoint: lifecycle of the database pool and the cache client,
router registration and request middleware.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.auth.tokens import ensure_signing_secret
from app.config import settings
from app.db.pool import db_pool
from app.db.schema import apply_schema
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import appointments, astrologers, health, users
from app.services.redis_client import cache_client

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    # Registration and login both issue tokens
    ensure_signing_secret()

    # The store is required: startup fails without it
    logger.info("Initializing database pool")
    await db_pool.initialize()

    try:
        if settings.DB_AUTO_CREATE_SCHEMA:
            await apply_schema()
    except Exception:
        await db_pool.close()
        raise

    # The cache is optional: a failed connect schedules a background reconnect
    logger.info("Initializing Redis connection")
    await cache_client.initialize()

    logger.info("All services initialized", cache_connected=cache_client.is_connected)

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        await cache_client.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))
        shutdown_errors.append(f"Redis: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Astrologer Booking",
    description="Users, astrologers and appointments with a Redis read-through cache",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(users.router)
app.include_router(astrologers.router)
app.include_router(appointments.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are a 400, not FastAPI's default 422."""
    errors = exc.errors()
    logger.info("Request validation failed", path=request.url.path, error_count=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Invalid request",
            "errors": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in errors
            ],
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


# Added last so it wraps log_requests and the request id reaches every log line
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
