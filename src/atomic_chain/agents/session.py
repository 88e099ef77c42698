"""
Per-run state shared by the calls of one batch.

A ToolSession is created per orchestration run (or passed in explicitly) and
is never shared through module-level state, so two runs cannot observe each
other's results or write history.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

__all__ = ["ToolSession", "WriteRecord", "WriteReport", "WriteTracker"]


@dataclass(slots=True)
class WriteRecord:
    write_count: int = 0
    last_write_time: float = 0.0
    content_hashes: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WriteReport:
    path: str
    write_count: int
    duplicate_count: int
    duplicate_detected: bool
    is_likely_loop: bool
    warning: Optional[str] = None


class WriteTracker:
    """
    Detects repeated writes of identical content to the same file.

    Keeps the last `history` content hashes per resolved path. A write whose
    content hash is already in that history is a duplicate; once the same
    content has been written `loop_threshold` + 1 times it is reported as a
    likely loop.
    """

    def __init__(self, *, history: int = 5, loop_threshold: int = 2) -> None:
        self._history = history
        self._loop_threshold = loop_threshold
        self._records: dict[str, WriteRecord] = {}

    @staticmethod
    def _content_hash(content: Any) -> str:
        text = content if isinstance(content, str) else repr(content)
        return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]

    def record_write(self, file_path: str, content: Any) -> WriteReport:
        key = os.path.abspath(str(file_path))
        digest = self._content_hash(content)
        record = self._records.setdefault(key, WriteRecord())

        record.write_count += 1
        record.last_write_time = time.time()

        previous = record.content_hashes.count(digest)
        duplicate = previous > 0
        loop = previous >= self._loop_threshold

        record.content_hashes.insert(0, digest)
        del record.content_hashes[self._history:]

        warning = None
        if loop:
            warning = f"LOOP DETECTED: identical content written to {key} {previous + 1} times"
        elif duplicate:
            warning = f"DUPLICATE: this content was previously written to {key}"

        return WriteReport(
            path=key,
            write_count=record.write_count,
            duplicate_count=previous + 1,
            duplicate_detected=duplicate,
            is_likely_loop=loop,
            warning=warning,
        )

    def write_count(self, file_path: str) -> int:
        record = self._records.get(os.path.abspath(str(file_path)))
        return record.write_count if record else 0


@dataclass(slots=True)
class ToolSession:
    """
    - context: call id -> result, written once per id right after that call succeeds
    - writes: duplicate-write detection for file-writing tools
    """
    context: dict[str, Any] = field(default_factory=dict)
    writes: WriteTracker = field(default_factory=WriteTracker)

    def record_result(self, call_id: str, result: Any) -> None:
        if call_id in self.context:
            # Append-only: a second success for the same id is ignored.
            logger.warning("Result for %r already recorded; keeping the first one", call_id)
            return
        self.context[call_id] = result

    def has_result(self, call_id: str) -> bool:
        return call_id in self.context
