"""
Server-Sent Events decoding.

Turns the line stream of a ``text/event-stream`` response into
``ServerSentEvent`` records following the WHATWG event-stream rules:
``event``/``data``/``id``/``retry`` fields, blank-line dispatch, ``:``
comments, and multi-line ``data`` joined with newlines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Final

logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME: Final[str] = "message"


@dataclass(frozen=True)
class ServerSentEvent:
    """One dispatched event from an event stream."""

    event: str = DEFAULT_EVENT_NAME
    data: str = ""
    id: str | None = None
    retry: int | None = None


class EventStreamDecoder:
    """
    Incremental line decoder.

    Feed one line at a time (without its line terminator); ``decode``
    returns an event when a blank line completes one.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._last_event_id: str | None = None
        self._retry: int | None = None

    @property
    def last_event_id(self) -> str | None:
        return self._last_event_id

    @property
    def retry(self) -> int | None:
        """Reconnection time in milliseconds last announced by the server."""
        return self._retry

    def decode(self, line: str) -> ServerSentEvent | None:
        line = line.rstrip("\r\n")

        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field_name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field_name == "event":
            self._event = value
        elif field_name == "data":
            self._data.append(value)
        elif field_name == "id":
            if "\0" not in value:
                self._last_event_id = value
        elif field_name == "retry":
            if value.isdigit():
                self._retry = int(value)
        else:
            logger.debug("Ignoring unknown event-stream field %r", field_name)
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        # A block without data lines only resets the event name.
        if not self._data:
            self._event = ""
            return None

        event = ServerSentEvent(
            event=self._event or DEFAULT_EVENT_NAME,
            data="\n".join(self._data),
            id=self._last_event_id,
            retry=self._retry,
        )
        self._event = ""
        self._data = []
        return event


async def iter_server_sent_events(
    lines: AsyncIterable[str],
    decoder: EventStreamDecoder | None = None,
) -> AsyncIterator[ServerSentEvent]:
    """
    Yield events decoded from an async iterable of lines.

    Pass a ``decoder`` to read its ``retry`` and ``last_event_id`` after the
    iteration stops, including ``retry:`` fields sent in blocks without data.
    """
    if decoder is None:
        decoder = EventStreamDecoder()
    async for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event
