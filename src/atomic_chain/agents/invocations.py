from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..core.sentinels import NO_VAL

logger = logging.getLogger(__name__)

__all__ = ["ToolInvocation", "ToolResult", "parse_tool_calls"]


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """
    One requested tool call of a batch.

    - id: unique within the batch; other calls reference its result as ``{{id.path}}``
    - name: tool kind, looked up in the ToolRegistry
    - arguments: raw (unresolved) JSON-like argument tree
    """
    id: str
    name: str
    arguments: Any = field(default_factory=dict)

    @staticmethod
    def from_dict(data: Mapping[str, Any], *, index: int = 0) -> ToolInvocation:
        """
        Build from ``{"id", "type": "function", "function": {"name", "arguments"}}``.

        ``arguments`` may be a JSON string (OpenAI wire format); an undecodable
        string becomes ``{}`` so the call fails validation instead of
        aborting the batch.
        """
        fn = data.get("function")
        if not isinstance(fn, Mapping):
            fn = {}

        call_id = data.get("id")
        if not isinstance(call_id, str) or not call_id.strip():
            call_id = f"call_{index}"

        name = fn.get("name")
        if not isinstance(name, str):
            name = ""

        arguments = fn.get("arguments")
        if arguments is None:
            arguments = {}
        elif isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                logger.warning("Tool call %s (%s): arguments are not valid JSON; using {}", call_id, name)
                arguments = {}

        return ToolInvocation(id=call_id, name=name, arguments=arguments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(slots=True)
class ToolResult:
    """Outcome of one processed call: exactly one of result / error is set."""
    id: str
    result: Any = NO_VAL
    error: Any = NO_VAL

    def __post_init__(self) -> None:
        if (self.result is NO_VAL) == (self.error is NO_VAL):
            raise ValueError("ToolResult requires exactly one of result or error.")

    @property
    def ok(self) -> bool:
        return self.error is NO_VAL

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"id": self.id, "result": self.result}
        return {"id": self.id, "error": self.error}


def parse_tool_calls(raw_tools: Any) -> list[ToolInvocation]:
    """Normalize the ``tools`` array of a model response; non-objects are skipped."""
    if not isinstance(raw_tools, Iterable) or isinstance(raw_tools, (str, bytes, Mapping)):
        return []

    out: list[ToolInvocation] = []
    for i, entry in enumerate(raw_tools):
        if not isinstance(entry, Mapping):
            logger.warning("Skipping tool call %d: expected an object, got %s", i, type(entry).__name__)
            continue
        out.append(ToolInvocation.from_dict(entry, index=i))
    return out
