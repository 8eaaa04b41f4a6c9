"""
Memorizu - FastAPI Application

Main entry point for the payments and publication backend.
Provides endpoints for checkout, Stripe webhooks, publication recovery,
refunds and plan limits.
"""

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from memorizu.config.settings import settings
from memorizu.infrastructure.exceptions import (
    ConflictError,
    MemorizuError,
    NotFoundError,
    ValidationError,
)
from memorizu.infrastructure.firestore.client import close_firestore, init_firestore
from memorizu.infrastructure.payments.stripe_service import (
    get_stripe_service,
    reset_stripe_service,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Memorizu backend starting in {settings.environment} mode...")

    if settings.firebase_configured:
        init_firestore()
    else:
        logger.warning("Firebase credentials not configured, Firestore starts on first use")

    if settings.stripe_secret_key:
        get_stripe_service()
    else:
        logger.warning("STRIPE_SECRET_KEY not set, payment endpoints will fail")

    yield

    close_firestore()
    reset_stripe_service()
    logger.info("Memorizu backend shutting down...")


app = FastAPI(
    title="Memorizu",
    description="Payments and publication backend for the Memorizu page builder",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed or incomplete request bodies and queries."""
    details = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Missing required parameters", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Auth guards and unknown routes, in the same body shape as app errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "code": HTTPStatus(exc.status_code).name},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors (including webhook signature failures)."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    """Page is in the wrong payment state for the request."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return JSONResponse(
        status_code=404,
        content=exc.to_dict(),
    )


@app.exception_handler(MemorizuError)
async def general_error_handler(request: Request, exc: MemorizuError):
    """Handle all other application errors."""
    logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "memorizu"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Memorizu API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from memorizu.api.routes import (  # noqa: E402
    admin,
    debug,
    pages,
    payment,
    publication,
    stripe_payments,
    subscription,
    webhooks,
)

app.include_router(stripe_payments.router, prefix="/api", tags=["Stripe"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(payment.router, prefix="/api", tags=["Payment"])
app.include_router(publication.router, prefix="/api", tags=["Publication"])
app.include_router(subscription.router, prefix="/api", tags=["Subscription"])
app.include_router(pages.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(debug.router, prefix="/api")
