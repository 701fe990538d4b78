"""
Interview API Client.

Single-shot request/response calls against the interview backend plus
the raw event-stream request used by the live transcript consumer.
Nothing here retries; retry policy belongs to the caller.

Example:
    >>> async with InterviewApiClient("http://localhost:8000") as api:
    ...     started = await api.start_interview(new_persona_id(), problem, solution)
    ...     report = await api.get_insights(started.interview_id)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import ClientConfig, normalize_base_url
from .errors import RequestFailedError
from .models import (
    InsightReport,
    InterviewStatus,
    StartInterviewRequest,
    StartInterviewResponse,
)


__all__ = ["InterviewApiClient", "new_persona_id"]


logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def new_persona_id() -> str:
    """Persona id for an ad-hoc persona built in the intake form."""
    return f"custom-persona-{int(time.time() * 1000)}"


class InterviewApiClient:
    """
    Async client for the interview backend.

    Owns one ``httpx.AsyncClient`` bound to the configured base URL. Use as
    an async context manager or call ``aclose()`` when done.

    Args:
        base_url: Backend host, e.g. ``http://localhost:8000``.
        timeout: Timeout in seconds for start/status/insights requests.
        transport: Optional httpx transport (tests pass a MockTransport or
            an ASGITransport here).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "InterviewApiClient":
        return cls(
            config.api_base_url,
            timeout=config.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "InterviewApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def stream_url(self, interview_id: str) -> str:
        return f"{self.base_url}/api/interviews/{interview_id}/stream"

    # -------------------------------------------------------------------------
    # Request/response calls
    # -------------------------------------------------------------------------

    async def start_interview(
        self,
        persona_id: str,
        problem: str,
        solution: str,
    ) -> StartInterviewResponse:
        """
        Start a new interview run on the backend.

        Raises:
            RequestFailedError: On a non-2xx response or transport failure.
        """
        body = StartInterviewRequest(
            persona_id=persona_id,
            problem=problem,
            solution=solution,
        )
        response = await self._request(
            "start interview",
            "POST",
            "/api/interviews/start",
            json=body.model_dump(),
        )
        started = self._parse("start interview", response, StartInterviewResponse)
        logger.info("Started interview %s", started.interview_id)
        return started

    async def get_interview_status(self, interview_id: str) -> InterviewStatus:
        """Fetch run status (polling fallback; the live view uses the stream)."""
        response = await self._request(
            "get interview status",
            "GET",
            f"/api/interviews/{interview_id}/status",
        )
        return self._parse("get interview status", response, InterviewStatus)

    async def get_insights(self, interview_id: str) -> InsightReport:
        """
        Fetch the final insight report of a completed interview.

        Raises:
            RequestFailedError: On a non-2xx response or transport failure.
        """
        response = await self._request(
            "get insights",
            "GET",
            f"/api/interviews/{interview_id}/insights",
        )
        report = self._parse("get insights", response, InsightReport)
        logger.info(
            "Loaded insights for %s: verdict=%s confidence=%.0f%%",
            interview_id,
            report.verdict.value,
            report.confidence,
        )
        return report

    # -------------------------------------------------------------------------
    # Event stream
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def open_event_stream(
        self,
        interview_id: str,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open the ``text/event-stream`` response for one interview.

        The response is yielded unread; the caller checks the handshake and
        iterates lines. ``read_timeout`` bounds the gap between received
        bytes, so it doubles as the stall timeout.
        """
        timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=connect_timeout,
            pool=connect_timeout,
        )
        async with self._client.stream(
            "GET",
            f"/api/interviews/{interview_id}/stream",
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=timeout,
        ) as response:
            yield response

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: object,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Request to %s%s failed: %s", self.base_url, path, exc)
            raise RequestFailedError(operation, None, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.error(
                "Request to %s%s returned HTTP %d",
                self.base_url,
                path,
                response.status_code,
            )
            raise RequestFailedError(
                operation,
                response.status_code,
                response.reason_phrase or None,
            )
        return response

    @staticmethod
    def _parse(
        operation: str,
        response: httpx.Response,
        model: type[_ModelT],
    ) -> _ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("Unexpected %s response body: %s", operation, exc)
            raise RequestFailedError(
                operation,
                response.status_code,
                f"invalid response body: {exc.error_count()} validation error(s)",
            ) from exc
