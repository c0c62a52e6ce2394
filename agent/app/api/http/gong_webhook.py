"""HTTP API layer: Gong webhook trigger (JSON or live stream) and service status."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from app.api.deps import get_container
from app.api.stream.sse import stream_response
from app.core.container import AppContainer
from app.infra.observability.logger import get_logger
from app.protocol.gong import GongWebhook, WebhookPayloadError, parse_webhook
from app.protocol.messages import (
    ConfiguredFlags,
    ErrorResponse,
    WebhookStatusResponse,
    WorkflowTriggeredResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["gong-webhook"])


def _wants_stream(request: Request) -> bool:
    return "text/event-stream" in request.headers.get("accept", "").lower()


def _resolve_webhook(container: AppContainer, body: bytes) -> GongWebhook:
    """Demo mode ignores the request body and uses the packaged webhook."""
    if container.settings.demo_mode:
        return container.demo_store.webhook()
    return parse_webhook(body)


@router.get("/gong-webhook", response_model=WebhookStatusResponse)
def webhook_status(container: AppContainer = Depends(get_container)) -> WebhookStatusResponse:
    settings = container.settings
    missing = settings.configuration_problems()
    return WebhookStatusResponse(
        demoMode=settings.demo_mode,
        mode="demo" if settings.demo_mode else "live",
        configured=ConfiguredFlags(
            gong=settings.gong_configured,
            llm=settings.llm_configured,
            slack=settings.slack_enabled,
        ),
        valid=not missing,
        missing=missing,
        jobRunning=container.job_runner.running,
    )


@router.post("/gong-webhook")
async def trigger_webhook(
    request: Request,
    requested_format: str | None = Query(default=None, alias="format"),
    container: AppContainer = Depends(get_container),
) -> Response:
    missing = container.settings.configuration_problems()
    if missing:
        logger.warning("webhook.rejected reason=configuration missing=%s", missing)
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(error="Configuration error", missing=missing).model_dump(exclude_none=True),
        )
    body = await request.body()

    if _wants_stream(request):

        def start() -> None:
            webhook = _resolve_webhook(container, body)
            container.job_runner.start(webhook)

        return stream_response(
            container,
            request,
            requested_format=requested_format,
            replay_history=False,
            start=start,
        )

    try:
        webhook = _resolve_webhook(container, body)
    except WebhookPayloadError as exc:
        logger.warning("webhook.rejected reason=payload error=%s", exc)
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Invalid payload", message=str(exc)).model_dump(exclude_none=True),
        )
    handle = container.job_runner.start(webhook)
    return JSONResponse(
        content=WorkflowTriggeredResponse(
            callId=webhook.call_id,
            runId=handle.run_id,
            demoMode=container.settings.demo_mode,
        ).model_dump()
    )
