"""
Headshots API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import get_settings
from .database import engine, Base, get_db
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .limiter import limiter
from .responses import api_exception_handler, request_validation_handler, success
from .routes import (
    auth_router,
    studios_router,
    shoot_router,
    predictions_router,
    favorites_router,
    gallery_router,
    webhooks_router,
)

settings = get_settings()

# Create tables (in production, use Alembic migrations instead)
Base.metadata.create_all(bind=engine)

# Generated images are served from here; must exist before the static mount
Path(settings.media_dir).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    api_logger.info(
        "Headshots API starting",
        environment=settings.environment,
        provider_configured=bool(settings.replicate_api_token),
        webhook_url=settings.replicate_webhook_url,
    )
    if not settings.replicate_api_token:
        api_logger.warning("REPLICATE_API_TOKEN not set; shoots will fail until it is configured")

    yield

    api_logger.info("Headshots API shutting down")


app = FastAPI(
    title="Headshots API",
    description="AI headshot studios, shoots and public gallery",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Structured error responses
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, api_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,
)

# Routes
app.include_router(auth_router)
app.include_router(studios_router)
app.include_router(shoot_router)
app.include_router(predictions_router)
app.include_router(favorites_router)
app.include_router(gallery_router)
app.include_router(webhooks_router)

app.mount(settings.media_url_prefix, StaticFiles(directory=settings.media_dir), name="media")


@app.get("/api/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint for load balancers and monitoring."""
    db.execute(text("SELECT 1"))
    return success({
        "status": "healthy",
        "environment": settings.environment,
        "version": "1.0.0",
    })
