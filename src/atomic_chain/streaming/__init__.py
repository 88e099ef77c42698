from .decoder import (
    CompleteEvent,
    FieldEvent,
    FieldMatch,
    IncrementalDecoder,
    LIVE_FIELDS,
    next_field,
    scan_string,
)
from .session import DEGRADED_REASONING, StreamingSession

__all__ = [
    "CompleteEvent",
    "DEGRADED_REASONING",
    "FieldEvent",
    "FieldMatch",
    "IncrementalDecoder",
    "LIVE_FIELDS",
    "StreamingSession",
    "next_field",
    "scan_string",
]
