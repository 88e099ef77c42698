"""
StreamingSession

Drives an IncrementalDecoder from Server-Sent-Event frames of an
OpenAI-compatible chat completion stream and produces the final response
object.

Frame handling
--------------
- a frame may carry several newline-separated lines
- only ``data: `` lines count; ``data: [DONE]`` ends the stream
- every other payload is a JSON envelope whose ``choices[0].delta.content``
  is the next text fragment; envelopes that fail to parse are skipped

Callbacks
---------
- ``on_field(field, value)`` for every completed top-level string field
- ``on_thoughts(text, partial)`` / ``on_content(text, partial)`` at most once
  each with ``partial=False``; in live mode the text received so far is
  surfaced with ``partial=True`` until one of them has fired
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, Callable, Optional

from ..core.Exceptions import DecodeError
from .decoder import CompleteEvent, FieldEvent, IncrementalDecoder

logger = logging.getLogger(__name__)

__all__ = ["DEGRADED_REASONING", "StreamingSession"]

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DEGRADED_REASONING = "Could not parse streaming response as JSON"

TextCallback = Callable[[str, bool], Any]
FieldCallback = Callable[[str, str], Any]


def _delta_content(envelope: Any) -> Optional[str]:
    try:
        content = envelope["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content if isinstance(content, str) else None


class StreamingSession:
    def __init__(
        self,
        on_thoughts: Optional[TextCallback] = None,
        on_content: Optional[TextCallback] = None,
        on_field: Optional[FieldCallback] = None,
        *,
        live: bool = False,
    ) -> None:
        self._on_thoughts = on_thoughts
        self._on_content = on_content
        self._on_field = on_field
        self._live = live

        self.decoder = IncrementalDecoder()
        self.raw_text: str = ""
        self.done: bool = False
        self.thoughts_shown: bool = False
        self.content_shown: bool = False

        self._complete: Optional[Any] = None
        self._captured: dict[str, str] = {}
        self._last_partial: Optional[tuple[str, str]] = None

    @property
    def captured_fields(self) -> dict[str, str]:
        """Top-level string fields seen so far (first value per field)."""
        return dict(self._captured)

    @property
    def complete_object(self) -> Optional[Any]:
        return self._complete

    # ------------------------------------------------------------------ #
    # Input
    # ------------------------------------------------------------------ #
    def feed_frame(self, frame: str) -> bool:
        """
        Process one transport frame. Returns False once the end-of-stream
        sentinel has been seen; later frames are ignored.
        """
        if self.done:
            return False

        for line in frame.split("\n"):
            line = line.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):]
            if payload.strip() == DONE_SENTINEL:
                self.done = True
                return False
            try:
                envelope = json.loads(payload)
            except ValueError:
                logger.debug("Skipping undecodable stream frame: %.80r", payload)
                continue
            fragment = _delta_content(envelope)
            if fragment:
                self.feed_text(fragment)
        return True

    def feed_text(self, fragment: str) -> None:
        """Feed one text fragment of the model output directly."""
        self.raw_text += fragment
        for event in self.decoder.feed(fragment):
            if isinstance(event, FieldEvent):
                self._handle_field(event.field, event.value)
            elif isinstance(event, CompleteEvent) and self._complete is None:
                self._complete = event.data

        if self._live and not (self.thoughts_shown or self.content_shown):
            self._surface_partial()

    # ------------------------------------------------------------------ #
    # Callbacks
    # ------------------------------------------------------------------ #
    def _handle_field(self, name: str, value: str) -> None:
        self._captured.setdefault(name, value)
        if self._on_field is not None:
            self._on_field(name, value)

        if name == "thoughts" and self._on_thoughts is not None and not self.thoughts_shown:
            self.thoughts_shown = True
            self._on_thoughts(value, False)
        elif name == "content" and self._on_content is not None and not self.content_shown:
            self.content_shown = True
            self._on_content(value, False)

    def _surface_partial(self) -> None:
        partial = self.decoder.partial_field()
        if partial is None or not partial[1] or partial == self._last_partial:
            return
        self._last_partial = partial
        name, text = partial
        if name == "thoughts" and self._on_thoughts is not None:
            self._on_thoughts(text, True)
        elif name == "content" and self._on_content is not None:
            self._on_content(text, True)

    # ------------------------------------------------------------------ #
    # Output
    # ------------------------------------------------------------------ #
    def finish(self) -> dict[str, Any]:
        """
        Final response object:

        1. the complete object the decoder produced, if any
        2. otherwise a strict parse of all accumulated text
        3. otherwise a degraded object built from the captured fields
        """
        if isinstance(self._complete, dict):
            return self._complete

        if not self.raw_text.strip():
            return {
                "thoughts": self._captured.get("thoughts", ""),
                "content": self._captured.get("content", ""),
            }

        try:
            return self.parse_raw()
        except DecodeError as exc:
            logger.debug("%s", exc)

        logger.warning("Streamed response was not valid JSON (%d chars); degrading", len(self.raw_text))
        return {
            "thoughts": self._captured.get("thoughts", ""),
            "content": self._captured.get("content") or self.raw_text,
            "reasoning": DEGRADED_REASONING,
            "degraded": True,
        }

    def parse_raw(self) -> dict[str, Any]:
        """Strictly parse all accumulated text as one JSON object."""
        try:
            parsed = json.loads(self.raw_text)
        except ValueError as exc:
            raise DecodeError(f"Accumulated stream text is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise DecodeError(f"Accumulated stream text is a JSON {type(parsed).__name__}, not an object")
        return parsed

    async def consume(self, frames: AsyncIterable[str]) -> dict[str, Any]:
        """Feed frames until the sentinel or the end of `frames`, then finish()."""
        async for frame in frames:
            if not self.feed_frame(frame):
                break
        return self.finish()
