"""
Tests for the text/event-stream line decoder.
"""

from __future__ import annotations

from typing import AsyncIterator

import pytest

from interview_client.sse import EventStreamDecoder, ServerSentEvent, iter_server_sent_events


def _decode_all(lines: list[str]) -> list[ServerSentEvent]:
    decoder = EventStreamDecoder()
    events = []
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            events.append(event)
    return events


class TestEventStreamDecoder:
    """Tests for field parsing and dispatch."""

    def test_named_event_dispatches_on_blank_line(self) -> None:
        """event + data are emitted once the block ends."""
        events = _decode_all(["event: message", 'data: {"a": 1}', ""])

        assert events == [ServerSentEvent(event="message", data='{"a": 1}')]

    def test_default_event_name(self) -> None:
        """A block without event field is a 'message' event."""
        events = _decode_all(["data: hello", ""])

        assert events[0].event == "message"

    def test_multiline_data_joined_with_newline(self) -> None:
        """Several data lines form one payload."""
        events = _decode_all(["data: first", "data: second", ""])

        assert events[0].data == "first\nsecond"

    def test_no_dispatch_without_blank_line(self) -> None:
        """An unterminated block is not emitted."""
        assert _decode_all(["event: complete", "data: {}"]) == []

    def test_comments_and_unknown_fields_ignored(self) -> None:
        """Heartbeat comments and unknown fields do not produce events."""
        events = _decode_all([": keep-alive", "foo: bar", "data: x", ""])

        assert events == [ServerSentEvent(data="x")]

    def test_block_without_data_only_resets_event_name(self) -> None:
        """A dataless block emits nothing and forgets its event name."""
        events = _decode_all(["event: error", "", "data: later", ""])

        assert events == [ServerSentEvent(event="message", data="later")]

    def test_id_and_retry_are_tracked(self) -> None:
        """Last event id and retry are remembered across events."""
        decoder = EventStreamDecoder()
        for line in ["retry: 3000", "id: abc-1", "data: x"]:
            decoder.decode(line)
        event = decoder.decode("")

        assert event is not None
        assert event.id == "abc-1"
        assert event.retry == 3000
        assert decoder.last_event_id == "abc-1"
        assert decoder.retry == 3000

    def test_non_numeric_retry_ignored(self) -> None:
        """Retry values that are not digits are dropped."""
        decoder = EventStreamDecoder()
        decoder.decode("retry: soon")

        assert decoder.retry is None

    def test_value_without_space_and_crlf(self) -> None:
        """Leading space is optional and CRLF terminators are stripped."""
        events = _decode_all(["event:complete\r\n", "data:{}\r\n", "\r\n"])

        assert events == [ServerSentEvent(event="complete", data="{}")]


class TestIterServerSentEvents:
    """Tests for the async adapter."""

    @pytest.mark.asyncio
    async def test_yields_events_in_order(self) -> None:
        """Events come out in stream order."""

        async def lines() -> AsyncIterator[str]:
            for line in ["event: message", "data: 1", "", ": ping", "event: complete", "data: {}", ""]:
                yield line

        events = [event async for event in iter_server_sent_events(lines())]

        assert [e.event for e in events] == ["message", "complete"]

    @pytest.mark.asyncio
    async def test_caller_decoder_keeps_retry_without_events(self) -> None:
        """A retry: in a data-less block is visible on the caller's decoder."""

        async def lines() -> AsyncIterator[str]:
            for line in ["retry: 10", ": hi", ""]:
                yield line

        decoder = EventStreamDecoder()
        events = [event async for event in iter_server_sent_events(lines(), decoder)]

        assert events == []
        assert decoder.retry == 10
