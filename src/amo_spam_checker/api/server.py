"""FastAPI server exposing the spam check webhooks."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Settings
from ..factory import Components, build_components
from .forms import unflatten_form
from .schemas import (
    CheckSpamRequest,
    CheckSpamResponse,
    CheckStatus,
    ErrorResponse,
    HealthResponse,
    PhoneCheckResponse,
    PhoneCheckResult,
    WebhookAck,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "amoCRM Spam Checker"
VERSION = "1.0.0"

router = APIRouter()


def _components(request: Request) -> Components:
    return request.app.state.components


def _elapsed(start: float) -> str:
    return f"{round((time.monotonic() - start) * 1000)}ms"


def _json(model: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        model.model_dump(mode="json", by_alias=True, exclude_none=True),
        status_code=status_code,
    )


async def read_body(request: Request) -> dict[str, Any]:
    """Decode a JSON or form-encoded request body into a mapping.

    Returns an empty dict for an empty or undecodable body.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(
        ("application/x-www-form-urlencoded", "multipart/form-data")
    ):
        form = await request.form()
        return unflatten_form(form.multi_items())

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Request body is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


# ──────────────────────────────────────────────────────────────────
# Webhooks
# ──────────────────────────────────────────────────────────────────

@router.post("/webhook/check-spam", tags=["Webhook"])
async def check_spam(request: Request) -> JSONResponse:
    """Check a number and update the lead before responding.

    Body: ``{"phone": "79001234567", "lead_id": 12345}``. Used by amoCRM
    widgets and Make.com scenarios that want the verdict in the response.
    """
    start = time.monotonic()
    body = await read_body(request)
    logger.info("Received check-spam webhook: %s", body)

    payload = CheckSpamRequest.model_validate(body)
    for field in ("phone", "lead_id"):
        if not getattr(payload, field):
            return _json(
                ErrorResponse(error=f"Missing required field: {field}"), status_code=400
            )

    service = _components(request).service
    try:
        verdict = await service.check_and_apply(payload.lead_id, payload.phone)
    except Exception as exc:
        logger.exception("Error processing check-spam webhook for lead %s", payload.lead_id)
        return _json(
            ErrorResponse(error=str(exc), processing_time=_elapsed(start)), status_code=500
        )

    if verdict.is_spam:
        response = CheckSpamResponse(
            status=CheckStatus.SPAM,
            phone=verdict.phone,
            spam_score=verdict.spam_score,
            category=verdict.category_name,
            message=f"Lead {payload.lead_id} marked as spam",
            processing_time=_elapsed(start),
        )
    else:
        response = CheckSpamResponse(
            status=CheckStatus.CLEAN,
            phone=verdict.phone,
            spam_score=verdict.spam_score,
            message="Number is clean, note added",
            processing_time=_elapsed(start),
        )
    return _json(response)


@router.post("/webhook/amocrm", tags=["Webhook"])
async def amocrm_webhook(request: Request) -> JSONResponse:
    """Receive amoCRM lead events (add/update/status) and check them in the background.

    Always answers 200 right away so amoCRM does not retry or disable the
    webhook while checks are still running.
    """
    try:
        body = await read_body(request)
        logger.info("Received amoCRM webhook: %s", body)

        if not body.get("leads"):
            return _json(WebhookAck(message="No leads data"))

        submitted = _components(request).dispatcher.dispatch(body)
        logger.info("Queued %d lead check(s)", submitted)
        return _json(WebhookAck())
    except Exception as exc:
        logger.exception("Error processing amoCRM webhook")
        return _json(WebhookAck(status="error", message=str(exc)))


# ──────────────────────────────────────────────────────────────────
# Diagnostics
# ──────────────────────────────────────────────────────────────────

@router.get("/test/check", tags=["Diagnostics"])
async def test_check(request: Request, phone: str | None = None) -> JSONResponse:
    """Classify a number without writing anything to amoCRM."""
    if not phone:
        return JSONResponse(
            {
                "error": "Phone number is required",
                "example": "/test/check?phone=79001234567",
            },
            status_code=400,
        )

    try:
        verdict = await _components(request).service.classify(phone)
    except Exception as exc:
        logger.exception("Test check failed for %s", phone)
        return _json(ErrorResponse(error=str(exc)), status_code=500)

    return _json(
        PhoneCheckResponse(
            result=PhoneCheckResult(
                phone=verdict.phone,
                is_spam=verdict.is_spam,
                spam_score=verdict.spam_score,
                category=verdict.category_name,
                reviews_count=verdict.reviews_count,
                organization=verdict.organization,
                region=verdict.region,
                operator=verdict.operator,
            )
        )
    )


@router.get("/", tags=["Health"])
async def index(request: Request) -> dict:
    """Service status and configuration summary."""
    settings = _components(request).settings
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": {
            "spravportal": settings.spravportal_url,
            "amocrm": settings.amocrm_domain,
            "spamThreshold": settings.spam_threshold,
            "spamAction": settings.amocrm_spam_action.value,
            "spamStatusConfigured": settings.spam_status_configured,
        },
        "endpoints": {
            "POST /webhook/check-spam": "Main webhook (phone, lead_id)",
            "POST /webhook/amocrm": "amoCRM webhook format",
            "GET /test/check?phone=X": "Check a number without updating amoCRM",
            "GET /": "Service status (this page)",
            "GET /health": "Health check for monitoring",
        },
    }


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


# ──────────────────────────────────────────────────────────────────
# Application
# ──────────────────────────────────────────────────────────────────

def log_startup_banner(settings: Settings) -> None:
    logger.info("%s started", SERVICE_NAME)
    logger.info("Port: %d", settings.port)
    logger.info("SpravPortal API: %s", settings.spravportal_url)
    logger.info("amoCRM: %s", settings.amocrm_domain)
    logger.info(
        "Spam threshold: %d%%, action: %s",
        settings.spam_threshold,
        settings.amocrm_spam_action.value,
    )


def create_app(
    settings: Settings | None = None,
    components: Components | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Components are built on startup from ``settings`` (or the environment)
    unless prebuilt ones are passed in, and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        comps = components
        if comps is None:
            comps = build_components(settings or Settings())
        app.state.components = comps
        log_startup_banner(comps.settings)
        try:
            yield
        finally:
            await comps.close()
            logger.info("%s stopped", SERVICE_NAME)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Checks inbound call numbers for spam and updates amoCRM leads",
        version=VERSION,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


def run_server(host: str = "0.0.0.0", port: int | None = None) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host=host, port=port or settings.port)
