"""
Scenario tests for the terminal watcher.

The backend is a MockTransport handler that serves start, stream, and
insights routes and counts how often each is hit.
"""

from __future__ import annotations

from typing import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from interview_client.api_client import InterviewApiClient
from interview_client.models import Speaker
from interview_client.session_context import SessionContextStore
from interview_client.stream import TranscriptStreamConsumer
from tests.mock_data import (
    generate_individual_persona,
    generate_insight_report_body,
    generate_transcript_payload,
    sse_complete,
    sse_message,
    sse_stream,
)
from watch_interview import (
    EXIT_INVALID_INPUT,
    EXIT_NO_SESSION,
    EXIT_REQUEST_FAILED,
    EXIT_STREAM_FAILED,
    EXIT_SUCCESS,
    main,
    run_insights,
    run_watch,
)


INSIGHTS_PATH = "/api/interviews/abc123/insights"


class ScenarioBackend:
    """MockTransport handler for a single scripted interview."""

    def __init__(self, stream_body: bytes, start_status: int = 200) -> None:
        self.stream_body = stream_body
        self.start_status = start_status
        self.hits: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.hits[path] = self.hits.get(path, 0) + 1

        if path == "/api/interviews/start":
            if self.start_status != 200:
                return httpx.Response(self.start_status)
            return httpx.Response(200, json={"interviewId": "abc123", "status": "in-progress"})
        if path == "/api/interviews/abc123/stream":
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=self.stream_body,
            )
        if path == INSIGHTS_PATH:
            return httpx.Response(200, json=generate_insight_report_body())
        return httpx.Response(404)


@pytest_asyncio.fixture
async def make_api() -> AsyncIterator[Callable[[ScenarioBackend], InterviewApiClient]]:
    """API client factory over a ScenarioBackend."""
    clients: list[InterviewApiClient] = []

    def factory(backend: ScenarioBackend) -> InterviewApiClient:
        client = InterviewApiClient("http://backend.test", transport=httpx.MockTransport(backend))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


def _two_turns() -> list[str]:
    return [
        sse_message(generate_transcript_payload("1", Speaker.INITIATOR, "Tell me about your process")),
        sse_message(generate_transcript_payload("2", Speaker.RESPONDENT, "We use spreadsheets")),
    ]


class TestRunWatch:
    """Tests for the start -> stream -> insights flow."""

    @pytest.mark.asyncio
    async def test_completed_interview_fetches_insights_once(self, make_api, capsys) -> None:
        """Two messages then complete: transcript printed, insights fetched once."""
        backend = ScenarioBackend(sse_stream(*_two_turns(), sse_complete()))
        api = make_api(backend)
        store = SessionContextStore({})

        exit_code = await run_watch(
            api,
            TranscriptStreamConsumer(api, retry_delay=0.0),
            store,
            generate_individual_persona(),
            "Problem",
            "Solution",
        )

        assert exit_code == EXIT_SUCCESS
        assert backend.hits[INSIGHTS_PATH] == 1
        out = capsys.readouterr().out
        assert out.index("Interviewer: Tell me about your process") < out.index(
            "Customer: We use spreadsheets"
        )
        assert "Verdict: NO-GO" in out
        stored = store.read()
        assert stored is not None
        assert stored.interview_id == "abc123"

    @pytest.mark.asyncio
    async def test_disconnect_never_fetches_insights(self, make_api, capsys) -> None:
        """One message then disconnect: stream failure, no insights request."""
        backend = ScenarioBackend(sse_stream(_two_turns()[0]))
        api = make_api(backend)

        exit_code = await run_watch(
            api,
            TranscriptStreamConsumer(api, retry_delay=0.0),
            SessionContextStore({}),
            generate_individual_persona(),
            "Problem",
            "Solution",
        )

        assert exit_code == EXIT_STREAM_FAILED
        assert INSIGHTS_PATH not in backend.hits
        assert "Tell me about your process" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_failed_start_opens_no_stream(self, make_api) -> None:
        """A 500 on start exits before any stream request."""
        backend = ScenarioBackend(b"", start_status=500)
        api = make_api(backend)
        store = SessionContextStore({})

        exit_code = await run_watch(
            api,
            TranscriptStreamConsumer(api, retry_delay=0.0),
            store,
            generate_individual_persona(),
            "Problem",
            "Solution",
        )

        assert exit_code == EXIT_REQUEST_FAILED
        assert list(backend.hits) == ["/api/interviews/start"]
        assert store.read() is None


class TestRunInsights:
    """Tests for the insights-only path."""

    @pytest.mark.asyncio
    async def test_missing_context_exits_without_request(self, make_api) -> None:
        """No stored interview: distinct exit code, no request."""
        backend = ScenarioBackend(b"")
        api = make_api(backend)

        exit_code = await run_insights(api, SessionContextStore({}))

        assert exit_code == EXIT_NO_SESSION
        assert backend.hits == {}


class TestMain:
    """Tests for argument handling."""

    def test_insights_only_without_id(self, monkeypatch) -> None:
        """--insights-only without an interview id hits the bootstrap guard."""
        monkeypatch.setenv("INTERVIEW_API_BASE_URL", "http://127.0.0.1:9")

        assert main(["--insights-only"]) == EXIT_NO_SESSION

    def test_empty_persona_is_invalid_input(self, monkeypatch) -> None:
        """Blank persona fields are rejected before any request."""
        monkeypatch.setenv("INTERVIEW_API_BASE_URL", "http://127.0.0.1:9")

        assert main(["--jtbd", ""]) == EXIT_INVALID_INPUT
