"""Exceptions raised by the interview client."""

from __future__ import annotations


class InterviewClientError(Exception):
    """Base exception for interview client errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class RequestFailedError(InterviewClientError):
    """
    Raised when a start/status/insights request does not succeed.

    ``status_code`` is the HTTP status of the response, or ``None`` when the
    request never got one (connection refused, timeout).
    """

    def __init__(
        self,
        operation: str,
        status_code: int | None,
        detail: str | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        status_text = f"HTTP {status_code}" if status_code is not None else "no response"
        message = f"Failed to {operation}: {status_text}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message=message, error_code="REQUEST_FAILED")


class MissingSessionContextError(InterviewClientError):
    """Raised when a view needs an active session but none is stored."""

    def __init__(
        self, message: str = "No active interview. Start a new interview first."
    ) -> None:
        super().__init__(message=message, error_code="SESSION_CONTEXT_MISSING")
