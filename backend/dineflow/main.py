"""
DineFlow Booking API - Main Application Entry Point

Restaurant reservation backend:
- Double-booking-safe table reservation (partial unique index on active slots)
- Deposit payments through a pluggable gateway with idempotency keys
- Prorated refunds on cancellation, QR check-in, admin overrides
- Background notifications (SMS, email, LINE push)
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dineflow.core.config import get_settings
from dineflow.core.exceptions import BookingError
from dineflow.core.logging import setup_logging, get_logger
from dineflow.core.metrics import metrics_endpoint
from dineflow.api.router import api_router
from dineflow.api.middleware import RequestLoggingMiddleware
from dineflow.db.session import AsyncSessionLocal
from dineflow.services.cache_service import get_redis, close_redis, get_cache_stats, invalidate_restaurant_cache
from dineflow.services.restaurant_service import seed_sample_restaurants
from dineflow.services.strategy_factory import get_notification_dispatcher, close_collaborators

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        payment_gateway=settings.PAYMENT_GATEWAY,
        notifier=settings.NOTIFIER,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    await get_notification_dispatcher().start()

    if settings.SEED_SAMPLE_DATA:
        async with AsyncSessionLocal() as session:
            added = await seed_sample_restaurants(session)
            await session.commit()
        if added:
            await invalidate_restaurant_cache()

    yield

    await close_collaborators()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Restaurant reservation API with deposits, refunds and check-in",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("request_invalid", errors=len(exc.errors()))
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    dispatcher = get_notification_dispatcher()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "notifications": {"running": dispatcher.running, "pending": dispatcher.pending},
    }


@app.get("/metrics", tags=["Monitoring"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
