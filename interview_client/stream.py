"""
Live Transcript Stream Consumer.

Opens the server-push stream of one interview, decodes its named events
(``message``, ``complete``, ``error``) into typed stream events, and hands
them to three caller callbacks. The consumer owns the transport: it closes
it after ``complete`` or the first failure, so ``on_complete``/``on_error``
fire at most once and nothing fires after either.

Connection failures before the first event are retried internally (the
way a browser EventSource reconnects); only an exhausted retry budget is
reported. Once events have been delivered a disconnect is terminal, since
the backend cannot resume from an offset.

Example:
    >>> consumer = TranscriptStreamConsumer(api, stall_timeout=60.0)
    >>> handle = consumer.open(
    ...     "abc123",
    ...     on_message=lambda entry: print(entry.text),
    ...     on_complete=lambda: print("done"),
    ...     on_error=lambda error: print(error.message),
    ... )
    >>> await handle.wait()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Final, Union

import httpx
from pydantic import ValidationError

from .api_client import InterviewApiClient
from .config import ClientConfig
from .models import StreamError, StreamErrorKind, TranscriptEntry
from .sse import EventStreamDecoder, ServerSentEvent, iter_server_sent_events


__all__ = [
    "CompleteEvent",
    "ErrorEvent",
    "MessageEvent",
    "StreamDecodeError",
    "StreamHandle",
    "TranscriptStreamConsumer",
    "decode_stream_event",
]


logger = logging.getLogger(__name__)

EVENT_STREAM_CONTENT_TYPE: Final[str] = "text/event-stream"

MessageCallback = Callable[[TranscriptEntry], None]
CompleteCallback = Callable[[], None]
ErrorCallback = Callable[[StreamError], None]


# =============================================================================
# Typed stream events
# =============================================================================


@dataclass(frozen=True)
class MessageEvent:
    entry: TranscriptEntry


@dataclass(frozen=True)
class CompleteEvent:
    body: Any = None


@dataclass(frozen=True)
class ErrorEvent:
    payload: Any


StreamEvent = Union[MessageEvent, CompleteEvent, ErrorEvent]


class StreamDecodeError(Exception):
    """Raised when an event body is not JSON or does not match its schema."""

    def __init__(self, event_name: str, reason: str) -> None:
        self.event_name = event_name
        self.reason = reason
        super().__init__(f"Malformed '{event_name}' event: {reason}")


def decode_stream_event(event: ServerSentEvent) -> StreamEvent | None:
    """
    Decode one server-sent event into a typed stream event.

    Returns:
        The typed event, or None for events the client does not consume
        (unknown event names, ``message`` bodies of another ``type``).

    Raises:
        StreamDecodeError: If the body is not valid JSON or misses the
            fields its event kind requires.
    """
    if event.event not in ("message", "complete", "error"):
        logger.debug("Ignoring unknown stream event %r", event.event)
        return None

    try:
        body = json.loads(event.data)
    except json.JSONDecodeError as exc:
        raise StreamDecodeError(event.event, f"invalid JSON ({exc.msg})") from exc

    if event.event == "complete":
        return CompleteEvent(body)

    if not isinstance(body, dict):
        raise StreamDecodeError(event.event, "body is not a JSON object")

    if event.event == "error":
        if "payload" not in body:
            raise StreamDecodeError(event.event, "missing 'payload'")
        return ErrorEvent(body["payload"])

    if body.get("type") != "message":
        logger.debug("Ignoring message event of type %r", body.get("type"))
        return None

    try:
        entry = TranscriptEntry.model_validate(body.get("payload"))
    except ValidationError as exc:
        raise StreamDecodeError(
            event.event, f"invalid transcript entry ({exc.error_count()} error(s))"
        ) from exc
    return MessageEvent(entry)


# =============================================================================
# Handle
# =============================================================================


@dataclass(eq=False)
class StreamHandle:
    """
    Caller's handle on one open stream.

    ``close()`` is idempotent and must be called when the owning view goes
    away. After close, or after ``on_complete``/``on_error`` has fired, no
    callback is invoked again.
    """

    interview_id: str
    on_message: MessageCallback
    on_complete: CompleteCallback
    on_error: ErrorCallback
    _closed: bool = field(default=False, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.info("Closed stream for interview %s", self.interview_id)

    async def wait(self) -> None:
        """
        Wait until the reader stops.

        Re-raises an exception thrown by a caller callback; returns normally
        after completion, failure, or ``close()``.
        """
        if self._task is None:
            return
        await asyncio.wait({self._task})
        if not self._task.cancelled():
            self._task.result()

    def _deliver_message(self, entry: TranscriptEntry) -> None:
        if self._closed:
            return
        logger.debug(
            "Stream %s message %s from %s",
            self.interview_id,
            entry.id,
            entry.speaker.value,
        )
        self.on_message(entry)

    def _deliver_complete(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Interview %s complete", self.interview_id)
        self.on_complete()

    def _deliver_error(self, error: StreamError) -> None:
        if self._closed:
            return
        self._closed = True
        logger.error(
            "Stream for interview %s failed (%s): %s",
            self.interview_id,
            error.kind.value,
            error.message,
        )
        self.on_error(error)


class _HandshakeFailure(Exception):
    def __init__(self, error: StreamError) -> None:
        self.error = error
        super().__init__(error.message)


# =============================================================================
# Consumer
# =============================================================================


class TranscriptStreamConsumer:
    """
    Opens and reads the live transcript stream for one owning view.

    Only one stream is live per consumer: opening a second one closes the
    first before the new reader starts.

    Args:
        api_client: Client owning the backend base URL and HTTP connection.
        stall_timeout: Seconds without any received bytes before the stream
            is failed as stalled.
        connect_timeout: Seconds allowed to establish the stream connection.
        reconnect_attempts: Internal reconnects allowed before the first event.
        retry_delay: Seconds between reconnects unless the server sent ``retry:``.
    """

    def __init__(
        self,
        api_client: InterviewApiClient,
        *,
        stall_timeout: float = 60.0,
        connect_timeout: float = 10.0,
        reconnect_attempts: int = 2,
        retry_delay: float = 1.0,
    ) -> None:
        self._api = api_client
        self._stall_timeout = stall_timeout
        self._connect_timeout = connect_timeout
        self._reconnect_attempts = reconnect_attempts
        self._retry_delay = retry_delay
        self._active: StreamHandle | None = None

    @classmethod
    def from_config(
        cls,
        api_client: InterviewApiClient,
        config: ClientConfig,
    ) -> "TranscriptStreamConsumer":
        return cls(
            api_client,
            stall_timeout=config.stream_stall_timeout_seconds,
            connect_timeout=config.stream_connect_timeout_seconds,
            reconnect_attempts=config.stream_reconnect_attempts,
            retry_delay=config.stream_retry_delay_seconds,
        )

    @property
    def active_handle(self) -> StreamHandle | None:
        if self._active is not None and self._active.closed:
            return None
        return self._active

    def open(
        self,
        interview_id: str,
        on_message: MessageCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> StreamHandle:
        """
        Start reading the stream of ``interview_id``; returns immediately.

        Must be called from a running event loop; the reader runs as a task
        on that loop.
        """
        previous = self.active_handle
        if previous is not None:
            logger.warning(
                "Replacing live stream for %s with a new stream for %s",
                previous.interview_id,
                interview_id,
            )
            previous.close()

        handle = StreamHandle(
            interview_id=interview_id,
            on_message=on_message,
            on_complete=on_complete,
            on_error=on_error,
        )
        logger.info("Opening stream %s", self._api.stream_url(interview_id))
        handle._task = asyncio.get_running_loop().create_task(
            self._supervise(handle),
            name=f"transcript-stream-{interview_id}",
        )
        self._active = handle
        return handle

    def close(self) -> None:
        """Close the live stream, if any."""
        if self._active is not None:
            self._active.close()

    async def _supervise(self, handle: StreamHandle) -> None:
        try:
            await self._read_stream(handle)
        except asyncio.CancelledError:
            logger.debug("Stream reader for %s cancelled", handle.interview_id)
            raise
        except Exception as exc:
            logger.exception("Stream reader for %s crashed", handle.interview_id)
            handle._deliver_error(
                StreamError(
                    kind=StreamErrorKind.TRANSPORT,
                    message=f"Stream reader failed: {str(exc) or type(exc).__name__}",
                    detail=type(exc).__name__,
                )
            )
            raise
        finally:
            handle._closed = True

    async def _read_stream(self, handle: StreamHandle) -> None:
        attempts_left = self._reconnect_attempts
        retry_delay = self._retry_delay
        received_event = False

        while not handle.closed:
            decoder = EventStreamDecoder()
            try:
                async with self._api.open_event_stream(
                    handle.interview_id,
                    connect_timeout=self._connect_timeout,
                    read_timeout=self._stall_timeout,
                ) as response:
                    self._check_handshake(response)
                    logger.info("Stream connected for interview %s", handle.interview_id)

                    async for sse in iter_server_sent_events(response.aiter_lines(), decoder):
                        if self._dispatch(handle, sse):
                            return
                        received_event = True
                        if handle.closed:
                            return

                failure = StreamError(
                    kind=StreamErrorKind.TRANSPORT,
                    message="Stream ended before the interview completed.",
                )
            except _HandshakeFailure as exc:
                handle._deliver_error(exc.error)
                return
            except httpx.ReadTimeout:
                handle._deliver_error(
                    StreamError(
                        kind=StreamErrorKind.STALLED,
                        message=(
                            f"No data received for {self._stall_timeout:.0f}s; "
                            "the interview stream stalled."
                        ),
                    )
                )
                return
            except httpx.RequestError as exc:
                # Covers DecodingError, which is not a TransportError.
                failure = StreamError(
                    kind=StreamErrorKind.TRANSPORT,
                    message=f"Connection error: {str(exc) or type(exc).__name__}",
                    detail=type(exc).__name__,
                )

            if handle.closed:
                return

            if decoder.retry is not None:
                retry_delay = decoder.retry / 1000.0

            if received_event or attempts_left <= 0:
                handle._deliver_error(failure)
                return

            attempts_left -= 1
            logger.warning(
                "Stream for %s dropped before first event (%s); reconnecting in %.1fs "
                "(%d attempt(s) left)",
                handle.interview_id,
                failure.message,
                retry_delay,
                attempts_left,
            )
            await asyncio.sleep(retry_delay)

    @staticmethod
    def _check_handshake(response: httpx.Response) -> None:
        if response.status_code != 200:
            raise _HandshakeFailure(
                StreamError(
                    kind=StreamErrorKind.HANDSHAKE,
                    message=f"Stream request returned HTTP {response.status_code}.",
                    detail=response.status_code,
                )
            )
        content_type = response.headers.get("content-type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != EVENT_STREAM_CONTENT_TYPE:
            raise _HandshakeFailure(
                StreamError(
                    kind=StreamErrorKind.HANDSHAKE,
                    message=f"Stream response has content type '{content_type}'.",
                    detail=content_type,
                )
            )

    @staticmethod
    def _dispatch(handle: StreamHandle, sse: ServerSentEvent) -> bool:
        """Deliver one event; return True when the stream has reached an end."""
        try:
            event = decode_stream_event(sse)
        except StreamDecodeError as exc:
            handle._deliver_error(
                StreamError(
                    kind=StreamErrorKind.DECODE,
                    message=str(exc),
                    detail=sse.data,
                )
            )
            return True

        if event is None:
            return False
        if isinstance(event, MessageEvent):
            handle._deliver_message(event.entry)
            return False
        if isinstance(event, CompleteEvent):
            handle._deliver_complete()
            return True

        handle._deliver_error(
            StreamError(
                kind=StreamErrorKind.SERVER,
                message="The interview backend reported an error.",
                detail=event.payload,
            )
        )
        return True
