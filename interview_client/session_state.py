"""
Transcript assembly state machine.

Models one live interview view as an immutable ``StreamSessionState`` and
three pure transition functions, one per stream callback kind:

    Connecting --message--> Streaming --message--> Streaming
    Connecting/Streaming --complete--> Completed   (terminal)
    Connecting/Streaming --error-----> Failed      (terminal)

Terminal states absorb every later event unchanged. ``TranscriptSession``
wraps the pure functions in a small mutable holder whose bound methods are
plugged into ``TranscriptStreamConsumer.open``.

Thread Safety:
    ``TranscriptSession`` mutates only by swapping in a new immutable state.
    Readers on another thread always see a complete snapshot, but callbacks
    must all run on the one event loop that owns the stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .models import StreamError, TranscriptEntry

if TYPE_CHECKING:
    from .stream import StreamHandle, TranscriptStreamConsumer


__all__ = [
    "SessionPhase",
    "StreamSessionState",
    "TranscriptSession",
    "apply_complete",
    "apply_error",
    "apply_message",
    "initial_state",
]


logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    """Lifecycle phase of one live interview view."""

    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL_PHASES = frozenset({SessionPhase.COMPLETED, SessionPhase.FAILED})


@dataclass(frozen=True)
class StreamSessionState:
    """
    Snapshot of a live interview view.

    Attributes:
        phase: Current lifecycle phase.
        transcript: Entries in arrival order. Never reordered or edited.
        error: Why the stream failed; set only in ``FAILED``.
    """

    phase: SessionPhase = SessionPhase.CONNECTING
    transcript: tuple[TranscriptEntry, ...] = ()
    error: StreamError | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in _TERMINAL_PHASES

    @property
    def is_complete(self) -> bool:
        return self.phase == SessionPhase.COMPLETED

    @property
    def is_live_tail(self) -> bool:
        """True while entries are still arriving; drives the in-progress indicator."""
        return self.phase == SessionPhase.STREAMING

    @property
    def message_count(self) -> int:
        return len(self.transcript)


def initial_state() -> StreamSessionState:
    return StreamSessionState()


def apply_message(state: StreamSessionState, entry: TranscriptEntry) -> StreamSessionState:
    """Append one entry; the first one moves Connecting to Streaming."""
    if state.is_terminal:
        return state
    return replace(
        state,
        phase=SessionPhase.STREAMING,
        transcript=state.transcript + (entry,),
    )


def apply_complete(state: StreamSessionState) -> StreamSessionState:
    """Freeze the transcript as Completed."""
    if state.is_terminal:
        return state
    return replace(state, phase=SessionPhase.COMPLETED)


def apply_error(state: StreamSessionState, error: StreamError) -> StreamSessionState:
    """Fail the session, keeping the partial transcript."""
    if state.is_terminal:
        return state
    return replace(state, phase=SessionPhase.FAILED, error=error)


class TranscriptSession:
    """
    Live transcript for one interview, driven by stream callbacks.

    Example:
        >>> session = TranscriptSession("abc123")
        >>> handle = session.attach(consumer)
        >>> ...
        >>> session.state.phase
        <SessionPhase.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        interview_id: str,
        on_change: Callable[[StreamSessionState], None] | None = None,
    ) -> None:
        self.interview_id = interview_id
        self._state = initial_state()
        self._on_change = on_change

    @property
    def state(self) -> StreamSessionState:
        return self._state

    def attach(self, consumer: "TranscriptStreamConsumer") -> "StreamHandle":
        """Open the consumer's stream for this interview with this session's callbacks."""
        return consumer.open(
            self.interview_id,
            on_message=self.on_message,
            on_complete=self.on_complete,
            on_error=self.on_error,
        )

    def on_message(self, entry: TranscriptEntry) -> None:
        self._transition("message", apply_message(self._state, entry))

    def on_complete(self) -> None:
        self._transition("complete", apply_complete(self._state))

    def on_error(self, error: StreamError) -> None:
        self._transition("error", apply_error(self._state, error))

    def _transition(self, event_kind: str, next_state: StreamSessionState) -> None:
        if next_state is self._state:
            logger.debug(
                "Ignoring late %s event for %s in phase %s",
                event_kind,
                self.interview_id,
                self._state.phase.value,
            )
            return

        previous_phase = self._state.phase
        self._state = next_state
        if next_state.phase != previous_phase:
            logger.info(
                "Interview %s: %s -> %s (%d messages)",
                self.interview_id,
                previous_phase.value,
                next_state.phase.value,
                next_state.message_count,
            )
        if self._on_change is not None:
            self._on_change(next_state)
