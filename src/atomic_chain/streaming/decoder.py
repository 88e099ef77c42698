"""
IncrementalDecoder

Character-at-a-time decoder for one JSON object arriving in fragments.

It reports:
- FieldEvent(field, value): a top-level string field received its closing quote
- CompleteEvent(data): braces balanced and the buffered object parsed strictly

Nothing in here raises while feeding; text that does not parse yet is simply
kept in the buffer.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field as dc_field
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger(__name__)

__all__ = [
    "CompleteEvent",
    "FieldEvent",
    "FieldMatch",
    "IncrementalDecoder",
    "LIVE_FIELDS",
    "next_field",
    "scan_string",
]

# "<name>": "   (the key may not contain quotes or backslashes)
_FIELD_OPENER: re.Pattern[str] = re.compile(r'"([^"\\]+)"\s*:\s*"')

LIVE_FIELDS: tuple[str, ...] = ("thoughts", "content")

_LENIENT = json.JSONDecoder(strict=False)


@dataclass(frozen=True, slots=True)
class FieldEvent:
    field: str
    value: str
    kind: str = dc_field(default="field", init=False)


@dataclass(frozen=True, slots=True)
class CompleteEvent:
    data: Any
    kind: str = dc_field(default="complete", init=False)


DecoderEvent = Union[FieldEvent, CompleteEvent]


@dataclass(frozen=True, slots=True)
class FieldMatch:
    field: str
    value: str
    end: int  # offset just past the closing quote


# --------------------------------------------------------------------------- #
# Pull-parser helpers (pure)
# --------------------------------------------------------------------------- #
def scan_string(buffer: str, start: int, end: Optional[int] = None) -> tuple[str, Optional[int]]:
    """
    Scan a JSON string body beginning at `start` (just after its opening quote).

    A quote terminates the string when it is preceded by an even number of
    consecutive backslashes. Returns ``(raw_body, close_index)``; close_index
    is None when no terminating quote exists before `end` yet.
    """
    limit = len(buffer) if end is None else min(end, len(buffer))
    backslashes = 0
    i = start
    while i < limit:
        ch = buffer[i]
        if ch == "\\":
            backslashes += 1
        elif ch == '"' and backslashes % 2 == 0:
            return buffer[start:i], i
        else:
            backslashes = 0
        i += 1
    return buffer[start:limit], None


def _unescape(raw: str) -> str:
    """Decode JSON escapes in a string body; fall back to the raw text."""
    try:
        return _LENIENT.decode(f'"{raw}"')
    except ValueError:
        return raw


def _unescape_prefix(raw: str) -> str:
    """Like _unescape, for a body that may stop in the middle of an escape."""
    trailing = len(raw) - len(raw.rstrip("\\"))
    if trailing % 2:
        raw = raw[:-1]
    m = re.search(r"\\u[0-9a-fA-F]{0,3}$", raw)
    if m:
        raw = raw[: m.start()]
    return _unescape(raw)


def next_field(
    buffer: str,
    start: int,
    end: int,
    skip: Iterable[str] = (),
) -> Optional[FieldMatch]:
    """
    Find the last ``"<name>": "`` opener in ``buffer[start:end]`` whose name
    is not in `skip`, and extract its string value.

    Returns None when there is no such opener or its value has not received
    its closing quote yet.
    """
    skipped = set(skip)
    candidate: Optional[re.Match[str]] = None
    for m in _FIELD_OPENER.finditer(buffer, start, end):
        if m.group(1) not in skipped:
            candidate = m
    if candidate is None:
        return None

    raw, close = scan_string(buffer, candidate.end(), end)
    if close is None:
        return None
    return FieldMatch(field=candidate.group(1), value=_unescape(raw), end=close + 1)


# --------------------------------------------------------------------------- #
# Decoder
# --------------------------------------------------------------------------- #
class IncrementalDecoder:
    """
    Per-session decoder state:

    - buffer / pos: accumulated text and the next offset to examine
    - brace_depth / bracket_depth: unmatched ``{`` and ``[`` outside strings
    - in_string / escape_pending: string-literal tracking
    - object_start: offset of the top-level ``{``
    - field_cursor: field openers before this offset are never considered
    - emitted: field name -> value already reported
    """

    def __init__(self) -> None:
        self.buffer: str = ""
        self.reset()

    def reset(self) -> None:
        """Clear structural state (the buffer itself is left to the caller)."""
        self.pos: int = 0
        self.brace_depth: int = 0
        self.bracket_depth: int = 0
        self.in_string: bool = False
        self.escape_pending: bool = False
        self.object_start: Optional[int] = None
        self.field_cursor: int = 0
        self.emitted: dict[str, str] = {}

    @property
    def completed_fields(self) -> dict[str, str]:
        return dict(self.emitted)

    # ------------------------------------------------------------------ #
    # Feeding
    # ------------------------------------------------------------------ #
    def feed(self, chunk: str) -> list[DecoderEvent]:
        if not chunk:
            return []
        self.buffer += chunk
        events: list[DecoderEvent] = []

        while self.pos < len(self.buffer):
            i = self.pos
            ch = self.buffer[i]
            self.pos = i + 1

            if self.escape_pending:
                self.escape_pending = False
                continue

            if self.in_string:
                if ch == "\\":
                    self.escape_pending = True
                elif ch == '"':
                    self.in_string = False
                    if self.brace_depth == 1 and self.bracket_depth == 0:
                        self._extract_field(events)
                continue

            if ch == '"':
                self.in_string = True
            elif ch == "{":
                self.brace_depth += 1
                if self.brace_depth == 1:
                    self.object_start = i
                    self.field_cursor = i + 1
            elif ch == "}":
                if self.brace_depth == 0:
                    continue
                self.brace_depth -= 1
                if self.brace_depth == 1 and self.bracket_depth == 0:
                    self.field_cursor = i + 1
                elif self.brace_depth == 0:
                    self._complete(i, events)
            elif ch == "[":
                self.bracket_depth += 1
            elif ch == "]":
                if self.bracket_depth == 0:
                    continue
                self.bracket_depth -= 1
                if self.brace_depth == 1 and self.bracket_depth == 0:
                    self.field_cursor = i + 1

        return events

    def _extract_field(self, events: list[DecoderEvent]) -> None:
        match = next_field(self.buffer, self.field_cursor, self.pos, skip=self.emitted)
        if match is None:
            return
        self.emitted[match.field] = match.value
        self.field_cursor = match.end
        events.append(FieldEvent(field=match.field, value=match.value))

    def _complete(self, close: int, events: list[DecoderEvent]) -> None:
        if self.object_start is None:
            return
        span = self.buffer[self.object_start: close + 1]
        try:
            data = json.loads(span)
        except ValueError:
            logger.debug("Balanced braces but object does not parse yet (%d chars)", len(span))
            return

        events.append(CompleteEvent(data=data))
        self.buffer = self.buffer[close + 1:]
        self.reset()

    # ------------------------------------------------------------------ #
    # Read-only accessors
    # ------------------------------------------------------------------ #
    def partial_field(self, fields: Iterable[str] = LIVE_FIELDS) -> Optional[tuple[str, str]]:
        """
        Return ``(field, text_so_far)`` for the first of `fields` whose opener
        sits directly in the current top-level object, even if its closing
        quote has not arrived. Keys inside nested objects or arrays (such as
        tool-call arguments) are ignored. Does not touch decoder state.
        """
        openers = self._top_level_openers()
        for name in fields:
            start = openers.get(name)
            if start is None:
                continue
            raw, close = scan_string(self.buffer, start)
            text = _unescape(raw) if close is not None else _unescape_prefix(raw)
            return name, text
        return None

    def _top_level_openers(self) -> dict[str, int]:
        """Field name -> value offset for string fields at depth 1 of the open object."""
        found: dict[str, int] = {}
        if self.object_start is None:
            return found
        buf = self.buffer
        depth = bracket = 0
        in_string = escaped = False
        for i in range(self.object_start, len(buf)):
            ch = buf[i]
            if escaped:
                escaped = False
            elif in_string:
                if ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                if depth == 1 and bracket == 0:
                    m = _FIELD_OPENER.match(buf, i)
                    if m is not None:
                        found.setdefault(m.group(1), m.end())
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    break
            elif ch == "[":
                bracket += 1
            elif ch == "]" and bracket:
                bracket -= 1
        return found
