"""
Mock Interview Backend

Local stand-in for the adversarial interview engine. Accepts interview
starts, streams a scripted two-agent conversation as server-sent events,
and serves a canned insight report once the stream has completed.

Endpoints:
    POST /api/interviews/start            - Start an interview run
    GET  /api/interviews/{id}/status      - Run status (polling fallback)
    GET  /api/interviews/{id}/stream      - Live transcript (text/event-stream)
    GET  /api/interviews/{id}/insights    - Insight report (after completion)
    GET  /health                          - Health check

Usage:
    uv run python mock_backend.py
    INTERVIEW_API_BASE_URL=http://127.0.0.1:8000 uv run streamlit run streamlit_ui.py
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, AsyncIterator, Final, TypedDict

import uvicorn
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from interview_client.models import (
    InsightReport,
    InterviewStatus,
    Speaker,
    StartInterviewRequest,
    StartInterviewResponse,
    TranscriptEntry,
)

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

SERVICE_NAME: Final[str] = "Mock Interview Backend"
SERVICE_VERSION: Final[str] = "0.3.0"
EVENT_STREAM_RETRY_MS: Final[int] = 3000


@dataclass(frozen=True)
class RuntimeConfig:
    """Runtime config for the mock backend."""

    host: str
    port: int
    message_delay_seconds: float


def load_runtime_config() -> RuntimeConfig:
    """Load runtime config from environment with strict validation."""
    host = (os.environ.get("MOCK_BACKEND_HOST", "127.0.0.1") or "").strip()
    if not host:
        raise RuntimeError("MOCK_BACKEND_HOST resolved to empty value.")

    port_raw = (os.environ.get("MOCK_BACKEND_PORT", "8000") or "").strip()
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise RuntimeError(f"MOCK_BACKEND_PORT must be an integer. Got: {port_raw}") from exc
    if port < 1 or port > 65535:
        raise RuntimeError(f"MOCK_BACKEND_PORT must be in range 1-65535. Got: {port}.")

    delay_raw = (os.environ.get("MOCK_MESSAGE_DELAY_SECONDS", "1.5") or "").strip()
    try:
        message_delay_seconds = float(delay_raw)
    except ValueError as exc:
        raise RuntimeError(
            f"MOCK_MESSAGE_DELAY_SECONDS must be a number. Got: {delay_raw}"
        ) from exc
    if message_delay_seconds < 0:
        raise RuntimeError("MOCK_MESSAGE_DELAY_SECONDS must be zero or greater.")

    return RuntimeConfig(
        host=host,
        port=port,
        message_delay_seconds=message_delay_seconds,
    )


# =============================================================================
# Scripted Conversation (Mom Test interview, 12 turns)
# =============================================================================

INTERVIEW_SCRIPT: Final[tuple[tuple[Speaker, str], ...]] = (
    (Speaker.INITIATOR, "Thanks for making time. Can you walk me through the last time you planned work for your team?"),
    (Speaker.RESPONDENT, "Sure. Monday morning I pull tickets from three tools into a spreadsheet and try to figure out who is blocked."),
    (Speaker.INITIATOR, "How long does that take you, roughly, each week?"),
    (Speaker.RESPONDENT, "Maybe two hours. More if someone changed priorities over the weekend, which happens a lot."),
    (Speaker.INITIATOR, "What have you tried to fix that so far?"),
    (Speaker.RESPONDENT, "We trialed two project tools last year. Engineering liked one, marketing refused to touch it, so we went back to spreadsheets."),
    (Speaker.INITIATOR, "When you went back, did anyone spend money or time on a replacement?"),
    (Speaker.RESPONDENT, "Honestly, no. It is annoying but it works. Nobody has budget for another seat license right now."),
    (Speaker.INITIATOR, "If the two hours disappeared tomorrow, what would change for you?"),
    (Speaker.RESPONDENT, "I would sleep better on Sundays, I guess. But I would not say it is keeping the business from growing."),
    (Speaker.INITIATOR, "Who else feels this, and have they ever asked for a fix?"),
    (Speaker.RESPONDENT, "The other leads grumble about it in standups. Nobody has filed a request or escalated it, though."),
)


def build_insight_report(interview_id: str) -> InsightReport:
    """Canned report; the scoring engine is out of scope for the mock."""
    return InsightReport.model_validate(
        {
            "interviewId": interview_id,
            "verdict": "MAYBE",
            "confidence": 62,
            "scores": {
                "problem": {
                    "score": 6.5,
                    "label": "Real but tolerated",
                    "reasoning": "Weekly planning pain is concrete (two hours) yet the respondent calls it annoying, not urgent.",
                },
                "market": {
                    "score": 5.0,
                    "label": "Crowded",
                    "reasoning": "Respondent already trialed two tools and reverted; incumbents own the category.",
                },
                "willingnessToPay": {
                    "score": 3.0,
                    "label": "Weak",
                    "reasoning": "No budget for another seat license and no past spending on a fix.",
                },
            },
            "positiveSignals": [
                "Specific, recurring time cost quantified by the respondent",
                "Pain is shared across multiple team leads",
            ],
            "riskSignals": [
                "Respondent reverted to spreadsheets after two trials",
                "No one has escalated or requested a fix",
            ],
            "executionChallenges": [
                "Must satisfy engineering and marketing in one interface",
                "Seat-license budget is frozen",
            ],
            "nextSteps": [
                "Interview the leads who grumble in standups about their workarounds",
                "Test a free spreadsheet add-on before pitching a new tool",
            ],
            "quotes": [
                "It is annoying but it works.",
                "Nobody has budget for another seat license right now.",
            ],
        }
    )


# =============================================================================
# Response Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    error: str = Field(..., description="Error description")
    error_code: str | None = Field(default=None, description="Machine-readable error code")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: str = Field(..., description="Current server timestamp")
    interviews: int = Field(..., description="Interview runs started since boot")


# =============================================================================
# Application State
# =============================================================================


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class InterviewRun:
    """One started interview and its streaming progress."""

    interview_id: str
    persona_id: str
    problem: str
    solution: str
    started_at: str = field(default_factory=_now_utc)
    status: str = "in-progress"
    message_count: int = 0


class AppState(TypedDict):
    """Type-safe application state managed by lifespan."""

    interviews: dict[str, InterviewRun]
    message_delay_seconds: float
    fail_after_messages: int | None


# =============================================================================
# Custom Exceptions
# =============================================================================


class MockBackendError(Exception):
    """Base exception for mock backend errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class InterviewNotFoundError(MockBackendError):
    """Raised when an interview id is unknown."""

    def __init__(self, interview_id: str) -> None:
        super().__init__(
            message=f"Interview '{interview_id}' not found.",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="INTERVIEW_NOT_FOUND",
        )


class InterviewNotCompleteError(MockBackendError):
    """Raised when insights are requested before the stream completed."""

    def __init__(self, interview_id: str) -> None:
        super().__init__(
            message=f"Interview '{interview_id}' has not completed yet.",
            status_code=status.HTTP_409_CONFLICT,
            error_code="INTERVIEW_NOT_COMPLETE",
        )


# =============================================================================
# Dependencies
# =============================================================================


def get_app_state(request: Request) -> AppState:
    """Retrieve lifespan state attached to the request."""
    return AppState(
        interviews=request.state.interviews,
        message_delay_seconds=request.state.message_delay_seconds,
        fail_after_messages=request.state.fail_after_messages,
    )


AppStateDep = Annotated[AppState, Depends(get_app_state)]


def get_run(state: AppState, interview_id: str) -> InterviewRun:
    run = state["interviews"].get(interview_id)
    if run is None:
        raise InterviewNotFoundError(interview_id)
    return run


# =============================================================================
# Exception Handlers
# =============================================================================


async def mock_backend_error_handler(request: Request, exc: MockBackendError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, error_code=exc.error_code).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


# =============================================================================
# Event Stream
# =============================================================================


def format_sse(event: str, data: dict[str, Any]) -> str:
    """Encode one named event in text/event-stream framing."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def stream_interview(
    run: InterviewRun,
    message_delay_seconds: float,
    fail_after: int | None = None,
) -> AsyncIterator[str]:
    """
    Yield the scripted conversation for one run, then ``complete``.

    With ``fail_after`` set, an ``error`` event replaces the rest of the
    script after that many messages.
    """
    yield f"retry: {EVENT_STREAM_RETRY_MS}\n: connected to {run.interview_id}\n\n"
    run.message_count = 0

    for index, (speaker, text) in enumerate(INTERVIEW_SCRIPT, 1):
        if fail_after is not None and run.message_count >= fail_after:
            run.status = "failed"
            logger.warning("Injected failure for %s after %d messages", run.interview_id, fail_after)
            yield format_sse(
                "error",
                {"type": "error", "payload": {"message": "Conversation engine crashed"}},
            )
            return

        if message_delay_seconds > 0:
            await asyncio.sleep(message_delay_seconds)

        entry = TranscriptEntry(
            id=f"{run.interview_id}-{index}",
            speaker=speaker,
            text=text,
            produced_at=datetime.now(timezone.utc),
        )
        run.message_count = index
        yield format_sse(
            "message",
            {"type": "message", "payload": entry.model_dump(by_alias=True, mode="json")},
        )

    run.status = "completed"
    logger.info("Interview %s completed (%d messages)", run.interview_id, run.message_count)
    yield format_sse(
        "complete",
        {
            "type": "complete",
            "payload": {"interviewId": run.interview_id, "messageCount": run.message_count},
        },
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    message_delay_seconds: float | None = None,
    fail_after_messages: int | None = None,
) -> FastAPI:
    """
    Build the mock backend app.

    Args:
        message_delay_seconds: Pause before each streamed message. Defaults
            to MOCK_MESSAGE_DELAY_SECONDS; tests pass 0.
        fail_after_messages: When set, every stream pushes an ``error`` event
            after this many messages. The ``fail_after`` query parameter
            overrides it per request.
    """
    delay = (
        load_runtime_config().message_delay_seconds
        if message_delay_seconds is None
        else message_delay_seconds
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        logger.info("Starting %s v%s (message delay %.2fs)", SERVICE_NAME, SERVICE_VERSION, delay)
        yield {
            "interviews": {},
            "message_delay_seconds": delay,
            "fail_after_messages": fail_after_messages,
        }
        logger.info("Shutting down...")

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="Scripted stand-in for the adversarial interview engine",
        lifespan=lifespan,
    )
    app.add_exception_handler(MockBackendError, mock_backend_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.post("/api/interviews/start", response_model=StartInterviewResponse, response_model_by_alias=True)
    async def start_interview(
        body: StartInterviewRequest,
        state: AppStateDep,
    ) -> StartInterviewResponse:
        interview_id = uuid.uuid4().hex[:12]
        state["interviews"][interview_id] = InterviewRun(
            interview_id=interview_id,
            persona_id=body.persona_id,
            problem=body.problem,
            solution=body.solution,
        )
        logger.info("Started interview %s for persona %s", interview_id, body.persona_id)
        return StartInterviewResponse(interview_id=interview_id, status="in-progress")

    @app.get(
        "/api/interviews/{interview_id}/status",
        response_model=InterviewStatus,
        response_model_by_alias=True,
    )
    async def get_status(interview_id: str, state: AppStateDep) -> InterviewStatus:
        run = get_run(state, interview_id)
        return InterviewStatus(
            interview_id=run.interview_id,
            status=run.status,
            message_count=run.message_count,
            is_complete=run.status == "completed",
        )

    @app.get("/api/interviews/{interview_id}/stream")
    async def stream(
        interview_id: str,
        state: AppStateDep,
        fail_after: Annotated[int | None, Query(ge=0)] = None,
    ) -> StreamingResponse:
        run = get_run(state, interview_id)
        logger.info("Streaming interview %s", interview_id)
        return StreamingResponse(
            stream_interview(
                run,
                state["message_delay_seconds"],
                fail_after if fail_after is not None else state["fail_after_messages"],
            ),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.get("/api/interviews/{interview_id}/insights")
    async def get_insights(interview_id: str, state: AppStateDep) -> JSONResponse:
        run = get_run(state, interview_id)
        if run.status != "completed":
            raise InterviewNotCompleteError(interview_id)
        report = build_insight_report(interview_id)
        return JSONResponse(content=report.model_dump(by_alias=True, mode="json"))

    @app.get("/health", response_model=HealthResponse)
    async def health(state: AppStateDep) -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            timestamp=_now_utc(),
            interviews=len(state["interviews"]),
        )

    return app


if __name__ == "__main__":
    config = load_runtime_config()
    uvicorn.run(
        create_app(config.message_delay_seconds),
        host=config.host,
        port=config.port,
        log_level="info",
    )
