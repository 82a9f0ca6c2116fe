"""
Eco Bottle Storefront - Backend API
Catalog, order intake and asynchronous order fulfillment
"""
import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import auth, orders, products
from app.core.cache import CacheClient
from app.core.config import settings
from app.core.database import get_db_connection_with_retry, CONNECTION_TIMEOUT
from app.core.dependencies import fulfillment_scheduler
from app.core.exceptions import DomainError, OverloadedError
from app.core.metrics import (
    http_request_duration,
    http_requests_total,
    in_flight_requests,
    metrics_response,
    route_label,
)
from app.core.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

STARTED_AT = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.cache = CacheClient.from_url(settings.REDIS_URL)
    fulfillment_scheduler.start()

    if settings.FULFILLMENT_RECOVERY_ON_STARTUP and settings.DATABASE_URL:
        try:
            await fulfillment_scheduler.recover()
        except Exception as e:
            # Unfinished orders stay in the ledger and are retried next startup
            logger.error(f"Recovery sweep failed: {e}")

    logger.info(f"{settings.API_TITLE} started (environment={settings.ENVIRONMENT})")
    yield

    await fulfillment_scheduler.shutdown()
    await app.state.cache.close()
    logger.info(f"{settings.API_TITLE} stopped")


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    lifespan=lifespan
)

# Rate limiting runs inside CORS so 429 responses still carry CORS headers
app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "ETag", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log and record method, route, status and duration of every request"""
    start_time = time.time()
    in_flight_requests.inc()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        in_flight_requests.dec()
        duration = time.time() - start_time
        labels = {
            "method": request.method,
            "route": route_label(request),
            "status": str(status_code),
        }
        http_request_duration.labels(**labels).observe(duration)
        http_requests_total.labels(**labels).inc()
        logger.info(
            f"{request.method} {request.url.path} -> {status_code} ({round(duration * 1000, 2)}ms)"
        )


# =============================================================================
# Error handlers
# =============================================================================

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    headers = None
    if isinstance(exc, OverloadedError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "errors": errors}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    message = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"error": message})


# Include API routers
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(auth.router)


@app.get("/")
async def root():
    """Root endpoint - API status"""
    return {
        "message": settings.API_TITLE,
        "status": "online",
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
def health():
    """Health check endpoint for monitoring - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
        # Fast check: a single connection attempt
        conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        cursor = conn.cursor()

        db_start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        db_latency_ms = round((time.time() - db_start) * 1000, 2)

        cursor.close()
        conn.close()
        db_status = "connected"
    except Exception as e:
        db_status = "disconnected"
        db_error = str(e)

    total_latency_ms = round((time.time() - start_time) * 1000, 2)

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "service": "eco-bottle-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
            "connection_timeout_s": CONNECTION_TIMEOUT
        },
        "fulfillment": {
            "in_flight": fulfillment_scheduler.in_flight
        },
        "total_latency_ms": total_latency_ms
    }


@app.get("/api/v1/health")
async def api_health():
    """Liveness probe for the API prefix"""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.time() - STARTED_AT, 2)
    }


@app.get("/metrics", include_in_schema=False)
def metrics():
    """Prometheus scrape endpoint"""
    return metrics_response()
