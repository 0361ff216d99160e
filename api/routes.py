"""Generation endpoints: incremental (one step per call) and streaming (SSE)."""

import asyncio
import json
import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from api.deps import get_app_settings, get_orchestrator, get_session_user
from api.schemas import BookSummary, GenerateBookBody, GenerationResponse
from api.sse import SSE_HEADERS, EventChannel, format_sse
from config.exceptions import BookNotFoundError, InvalidConfigError, MissingFieldsError
from config.settings import Settings
from models.configuration import BookConfiguration
from models.enums import Phase
from models.outline import BookOutline
from workflow.callbacks import CallbackGroup, LoggingCallback
from workflow.cancellation import CancellationToken
from workflow.failures import classify
from workflow.graph import GenerationOrchestrator, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generation"])

REQUIRED_FIELDS = ["userId", "outline", "config"]


def to_generation_request(body: GenerateBookBody, user_id: Optional[str]) -> GenerationRequest:
    """Validate a request body into orchestrator inputs.

    Raises:
        MissingFieldsError: user, outline or config absent.
        InvalidConfigError: outline or config fail validation.
    """
    if not user_id or body.outline is None or body.config is None:
        raise MissingFieldsError(REQUIRED_FIELDS)
    try:
        outline = BookOutline.model_validate(body.outline)
        config = BookConfiguration.model_validate(body.config)
    except pydantic.ValidationError as e:
        raise InvalidConfigError(f"Invalid request body: {e.error_count()} validation error(s)",
                                 {"errors": str(e)}) from e
    return GenerationRequest(
        user_id=user_id,
        outline=outline,
        config=config,
        model_id=body.model_id,
        generation_speed=body.generation_speed,
        use_parallel=body.use_parallel,
        book_id=body.book_id,
        start_chapter=body.start_chapter,
    )


def _error_response(status_code: int, phase: Phase, **fields) -> JSONResponse:
    resp = GenerationResponse(success=False, phase=phase.value, **fields)
    return JSONResponse(status_code=status_code, content=resp.dump())


@router.post("/book")
async def generate_book(
    body: GenerateBookBody,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Advance a book by exactly one unit of work."""
    try:
        gen_request = to_generation_request(body, body.user_id)
    except MissingFieldsError as e:
        return _error_response(400, Phase.CREATING, error=e.message, message="Missing required fields")
    except InvalidConfigError as e:
        return _error_response(
            400, Phase.CREATING, error="Invalid request body", details=e.details.get("errors"),
            message="Invalid request body",
        )

    try:
        outcome = await orchestrator.advance(gen_request)
    except BookNotFoundError as e:
        return _error_response(
            404, Phase.GENERATING, book_id=body.book_id or 0, error="Book not found", details=e.message,
            message="Book not found",
        )
    except Exception as e:
        report = classify(e)
        logger.error("Book generation step failed (%s): %s", report.kind.value, e)
        return _error_response(
            500, Phase.GENERATING, book_id=body.book_id or 0,
            error=report.user_message, details=report.user_details, hint=report.hint,
            message=report.user_message,
        )

    snap = outcome.snapshot
    return GenerationResponse(
        success=True,
        phase=snap.phase.value,
        book_id=outcome.book_id,
        chapters_completed=snap.chapters_completed,
        total_chapters=snap.total_chapters,
        progress=snap.percent,
        message=snap.message,
        book=BookSummary.model_validate(outcome.book) if outcome.book else None,
    ).dump()


def _sse_error(status_code: int, payload: dict) -> Response:
    return Response(
        content=format_sse("error", payload),
        status_code=status_code,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/book-stream")
async def generate_book_stream(
    request: Request,
    user_id: Optional[str] = Depends(get_session_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_app_settings),
):
    """Drive a book to completion, pushing progress as server-sent events."""
    if not user_id:
        return _sse_error(401, {"error": "Unauthorized"})

    try:
        raw = await request.json()
        body = GenerateBookBody.model_validate(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, pydantic.ValidationError):
        return _sse_error(400, {"error": "Invalid request body"})

    try:
        gen_request = to_generation_request(body, user_id)
    except MissingFieldsError:
        return _sse_error(400, {"error": "Missing required fields"})
    except InvalidConfigError as e:
        return _sse_error(400, {"error": "Invalid request body", "details": e.details.get("errors")})

    token = CancellationToken()
    channel = EventChannel(token, settings.heartbeat_interval_seconds)

    # Events go to the client stream and to the server log
    callback = CallbackGroup(channel, LoggingCallback())

    async def worker():
        try:
            await orchestrator.run_to_completion(gen_request, callback, token)
        finally:
            channel.close()

    # The run outlives a dropped connection long enough to persist its batch
    task = asyncio.create_task(worker())
    background = request.app.state.background_tasks
    background.add(task)
    task.add_done_callback(background.discard)

    logger.info("Streaming generation for user %s (book=%s)", user_id, body.book_id)
    return StreamingResponse(
        channel.frames(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
