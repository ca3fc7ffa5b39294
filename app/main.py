from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.api.v1.router import router as api_v1_router
from app.core.exceptions import (
    AnswerRequiredError,
    AuthenticationError,
    DraftItemNotFoundError,
    DraftNotFoundError,
    FormNotFoundError,
    InvalidAnswerError,
    InvalidFormDataError,
    InvalidSheetUrlError,
    RunnerSessionNotFoundError,
    RunnerStateError,
    SessionStoreUnavailableError,
    SheetForwardingError,
    StoreFailureError,
    SubdomainConflictError,
    WebhookAuthError,
)
from app.core.config import settings as app_settings
from app.core.database import engine
from app.core.rate_limit import limiter

# Configure logging
logging.basicConfig(level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Dispose of pooled database connections on shutdown."""
    logger.info("LeadScorer API starting")
    yield
    await engine.dispose()
    logger.info("LeadScorer API stopped")


app = FastAPI(
    title="LeadScorer",
    description="Multi-tenant lead-qualification forms with scoring and redirects",
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


@app.exception_handler(FormNotFoundError)
async def form_not_found_handler(request: Request, exc: FormNotFoundError):
    logger.warning("Form not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "form_not_found"},
    )


@app.exception_handler(DraftNotFoundError)
async def draft_not_found_handler(request: Request, exc: DraftNotFoundError):
    logger.warning("Draft not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "draft_not_found"},
    )


@app.exception_handler(DraftItemNotFoundError)
async def draft_item_not_found_handler(request: Request, exc: DraftItemNotFoundError):
    logger.warning("Draft item not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "draft_item_not_found"},
    )


@app.exception_handler(RunnerSessionNotFoundError)
async def session_not_found_handler(request: Request, exc: RunnerSessionNotFoundError):
    logger.warning("Runner session not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "session_not_found"},
    )


# ---------------------------------------------------------------------------
# ValidationFailure
# ---------------------------------------------------------------------------


@app.exception_handler(InvalidFormDataError)
async def invalid_form_data_handler(request: Request, exc: InvalidFormDataError):
    logger.warning("Invalid form data: %s (%s)", exc.detail, exc.errors)
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.detail,
            "errors": exc.errors,
            "type": "validation_failure",
        },
    )


@app.exception_handler(InvalidAnswerError)
async def invalid_answer_handler(request: Request, exc: InvalidAnswerError):
    logger.warning("Invalid answer: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_answer"},
    )


@app.exception_handler(AnswerRequiredError)
async def answer_required_handler(request: Request, exc: AnswerRequiredError):
    logger.info("Answer required: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "answer_required"},
    )


@app.exception_handler(InvalidSheetUrlError)
async def invalid_sheet_url_handler(request: Request, exc: InvalidSheetUrlError):
    logger.warning("Invalid sheet URL: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_sheet_url"},
    )


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


@app.exception_handler(SubdomainConflictError)
async def subdomain_conflict_handler(request: Request, exc: SubdomainConflictError):
    logger.warning("Subdomain conflict: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "subdomain_conflict"},
    )


@app.exception_handler(RunnerStateError)
async def runner_state_handler(request: Request, exc: RunnerStateError):
    logger.warning("Invalid runner state: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "invalid_runner_state"},
    )


# ---------------------------------------------------------------------------
# StoreFailure
# ---------------------------------------------------------------------------


@app.exception_handler(StoreFailureError)
async def store_failure_handler(request: Request, exc: StoreFailureError):
    logger.error("Store failure: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "store_failure"},
    )


@app.exception_handler(SessionStoreUnavailableError)
async def session_store_unavailable_handler(
    request: Request, exc: SessionStoreUnavailableError
):
    logger.error("Session store unavailable: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "session_store_unavailable"},
    )


# ---------------------------------------------------------------------------
# AuthFailure
# ---------------------------------------------------------------------------


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    logger.info("Authentication required for %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=401,
        content={
            "detail": exc.detail,
            "login_url": exc.login_url,
            "type": "auth_required",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(WebhookAuthError)
async def webhook_auth_handler(request: Request, exc: WebhookAuthError):
    logger.warning("Rejected webhook call: %s", exc.detail)
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "type": "invalid_webhook_secret"},
    )


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------


@app.exception_handler(SheetForwardingError)
async def sheet_forwarding_handler(request: Request, exc: SheetForwardingError):
    logger.error("Sheet forwarding failed: %s", exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "type": "sheet_forwarding_failed"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_encoder(exc.errors()),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
