from .base import REQUIRED_FIELDS, Tool, ToolFunction, format_missing
from .registry import ToolRegistry
from .summaries import summarize_call, summarize_failure

__all__ = [
    "REQUIRED_FIELDS",
    "Tool",
    "ToolFunction",
    "ToolRegistry",
    "format_missing",
    "summarize_call",
    "summarize_failure",
]
