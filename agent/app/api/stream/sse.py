"""Stream API layer: live log feed endpoint and the shared SSE response builder."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app.api.deps import get_container
from app.api.stream.framing import SSE_HEADERS, FrameEncoder, resolve_format
from app.api.stream.session import StreamSession
from app.core.container import AppContainer

router = APIRouter(tags=["stream"])


def stream_response(
    container: AppContainer,
    request: Request,
    *,
    requested_format: str | None,
    replay_history: bool,
    start: Callable[[], object] | None = None,
) -> StreamingResponse:
    """Attach a new StreamSession to the bus and stream its frames."""
    encoder = FrameEncoder(
        resolve_format(requested=requested_format, user_agent=request.headers.get("user-agent"))
    )
    session = StreamSession(
        bus=container.bus,
        encoder=encoder,
        timeout_seconds=container.settings.stream_timeout_seconds,
        replay_history=replay_history,
    )
    return StreamingResponse(
        session.frames(start),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/api/logs")
async def stream_logs(
    request: Request,
    requested_format: str | None = Query(default=None, alias="format"),
    container: AppContainer = Depends(get_container),
) -> StreamingResponse:
    """Replay buffered events, then follow the live feed. Never starts a job."""
    return stream_response(
        container,
        request,
        requested_format=requested_format,
        replay_history=True,
    )
