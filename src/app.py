"""FarmGate FastAPI application.

Storefront (cart quotes, checkout) and order tracking served from one app.
Domain errors are mapped to HTTP status codes here and nowhere else.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from shared.config import get_currency, get_environment
from shared.domain import init_domain
from shared.errors import (
    AccessDenied,
    CheckoutRejected,
    StoreError,
    TransitionFailed,
    TransitionRejected,
)
from shared.logging import add_context, clear_context, configure_logging

configure_logging()

# Initialized at module level so uvicorn workers share it.
farmgate = init_domain()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="FarmGate API",
    description="Farm produce storefront with tiered pricing, checkout and live order tracking",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Push the domain context and bind a request id and the caller to every log line."""
    clear_context()
    add_context(
        request_id=request.headers.get("X-Request-Id") or uuid.uuid4().hex,
        user_id=request.headers.get("X-User-Id"),
        path=request.url.path,
    )
    try:
        with farmgate.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def _error(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc), **extra})


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    logger.warning("request_access_denied", order_id=exc.order_id)
    return _error(403, exc)


@app.exception_handler(ObjectNotFoundError)
async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    return _error(404, exc)


@app.exception_handler(TransitionRejected)
async def transition_rejected_handler(request: Request, exc: TransitionRejected):
    return _error(409, exc, retryable=exc.retryable)


@app.exception_handler(TransitionFailed)
async def transition_failed_handler(request: Request, exc: TransitionFailed):
    return _error(503, exc, retryable=exc.retryable)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("request_store_unavailable", error=str(exc))
    return _error(503, exc, retryable=True)


@app.exception_handler(CheckoutRejected)
async def checkout_rejected_handler(request: Request, exc: CheckoutRejected):
    return _error(422, exc, errors=exc.errors)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "ValidationError", "errors": exc.messages})


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api.routes import router as storefront_router  # noqa: E402
from tracking.api.routes import router as tracking_router  # noqa: E402

app.include_router(storefront_router)
app.include_router(tracking_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "environment": get_environment(),
            "currency": get_currency(),
        }
    )
