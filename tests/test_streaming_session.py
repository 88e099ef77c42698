"""Tests for StreamingSession (SSE frames -> final response object)."""

from __future__ import annotations

import json

import pytest

from atomic_chain.streaming import DEGRADED_REASONING, StreamingSession


def sse(fragment: str) -> str:
    envelope = {"choices": [{"delta": {"content": fragment}}]}
    return f"data: {json.dumps(envelope)}\n\n"


DONE = "data: [DONE]\n\n"


async def _frames(*frames: str):
    for frame in frames:
        yield frame


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def thoughts(self, text: str, partial: bool) -> None:
        self.calls.append(("thoughts", text, partial))

    def content(self, text: str, partial: bool) -> None:
        self.calls.append(("content", text, partial))

    def field(self, name: str, value: str) -> None:
        self.calls.append(("field", name, value))


class TestFrameHandling:
    def test_multiple_lines_in_one_frame(self):
        session = StreamingSession()
        session.feed_frame(sse('{"content": ') + sse('"hi"}'))
        assert session.finish() == {"content": "hi"}

    def test_non_data_lines_and_bad_envelopes_are_skipped(self):
        session = StreamingSession()
        session.feed_frame(": keep-alive\n")
        session.feed_frame("event: ping\n")
        session.feed_frame("data: {not json\n")
        session.feed_frame('data: {"choices": []}\n')
        session.feed_frame(sse('{"content": "ok"}'))
        assert session.raw_text == '{"content": "ok"}'
        assert session.finish() == {"content": "ok"}

    def test_done_sentinel_stops_processing(self):
        session = StreamingSession()
        assert session.feed_frame(sse('{"content": "a"}')) is True
        assert session.feed_frame(DONE) is False
        assert session.done is True
        assert session.feed_frame(sse("ignored")) is False
        assert session.raw_text == '{"content": "a"}'

    def test_crlf_lines(self):
        session = StreamingSession()
        session.feed_frame(sse('{"content": "x"}').replace("\n", "\r\n"))
        assert session.finish() == {"content": "x"}


class TestCallbacks:
    def test_thoughts_and_content_fire_once_each(self):
        rec = Recorder()
        session = StreamingSession(on_thoughts=rec.thoughts, on_content=rec.content, on_field=rec.field)
        for fragment in ['{"thou', 'ghts": "Hi', ' there", "content":"ok"}']:
            session.feed_frame(sse(fragment))

        assert rec.calls == [
            ("field", "thoughts", "Hi there"),
            ("thoughts", "Hi there", False),
            ("field", "content", "ok"),
            ("content", "ok", False),
        ]
        assert session.thoughts_shown and session.content_shown

    def test_repeated_object_does_not_refire(self):
        rec = Recorder()
        session = StreamingSession(on_content=rec.content)
        session.feed_text('{"content": "one"}')
        session.feed_text('{"content": "two"}')
        assert rec.calls == [("content", "one", False)]
        assert session.finish() == {"content": "one"}

    def test_live_mode_surfaces_partial_text(self):
        rec = Recorder()
        session = StreamingSession(on_thoughts=rec.thoughts, live=True)
        session.feed_text('{"thoughts": "Hel')
        session.feed_text("lo")
        session.feed_text('", "content": "x"}')

        assert rec.calls == [
            ("thoughts", "Hel", True),
            ("thoughts", "Hello", True),
            ("thoughts", "Hello", False),
        ]

    def test_partial_does_not_set_flags(self):
        rec = Recorder()
        session = StreamingSession(on_thoughts=rec.thoughts, live=True)
        session.feed_text('{"thoughts": "Hel')
        assert session.thoughts_shown is False

    def test_no_partials_without_live_mode(self):
        rec = Recorder()
        session = StreamingSession(on_thoughts=rec.thoughts)
        session.feed_text('{"thoughts": "Hel')
        assert rec.calls == []


class TestFinish:
    def test_empty_stream(self):
        assert StreamingSession().finish() == {"thoughts": "", "content": ""}

    def test_degraded_when_unparseable(self):
        session = StreamingSession()
        session.feed_text('{"thoughts": "partial idea", "content": "unfinished')
        result = session.finish()

        assert result == {
            "thoughts": "partial idea",
            "content": '{"thoughts": "partial idea", "content": "unfinished',
            "reasoning": DEGRADED_REASONING,
            "degraded": True,
        }

    def test_degraded_uses_captured_content(self):
        session = StreamingSession()
        session.feed_text('{"content": "kept", "tools": [')
        result = session.finish()
        assert result["content"] == "kept"
        assert result["degraded"] is True

    def test_plain_text_response(self):
        session = StreamingSession()
        session.feed_text("I am not JSON")
        result = session.finish()
        assert result["thoughts"] == ""
        assert result["content"] == "I am not JSON"

    def test_complete_object_preferred(self):
        session = StreamingSession()
        session.feed_text('{"content": "a", "tools": []}')
        assert session.complete_object == {"content": "a", "tools": []}
        assert session.finish() == {"content": "a", "tools": []}


class TestConsume:
    @pytest.mark.asyncio
    async def test_consume_until_done(self):
        session = StreamingSession()
        result = await session.consume(
            _frames(sse('{"thoughts": "t",'), sse(' "content": "c"}'), DONE, sse("after"))
        )
        assert result == {"thoughts": "t", "content": "c"}
        assert "after" not in session.raw_text

    @pytest.mark.asyncio
    async def test_consume_without_sentinel(self):
        session = StreamingSession()
        result = await session.consume(_frames(sse('{"content": "c"}')))
        assert result == {"content": "c"}
