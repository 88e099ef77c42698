from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, Optional

from ..core.Exceptions import ToolDefinitionError, ToolRegistrationError
from ..core.Prompts import TOOL_LINE_TEMPLATE
from .base import Tool, ToolFunction

logger = logging.getLogger(__name__)

__all__ = ["ToolRegistry"]

_COLLISION_MODES = ("raise", "skip", "replace")


class ToolRegistry:
    """
    Name -> Tool mapping consulted by the executor.

    Tools are keyed by their short ``name`` (the name the model uses in a
    batch). Plain callables are wrapped in a :class:`Tool` on registration.
    """

    def __init__(self, tools: Optional[Iterable[Tool | ToolFunction]] = None) -> None:
        self._tools: dict[str, Tool] = {}
        if tools:
            self.batch_register(tools)

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def register(
        self,
        component: Tool | ToolFunction,
        *,
        name: Optional[str] = None,
        required_fields: Optional[Iterable[str]] = None,
        timeout_seconds: Optional[float] = None,
        name_collision_mode: str = "raise",
    ) -> Optional[Tool]:
        """
        Register a Tool (or wrap a callable into one).

        Returns the registered Tool, or None if it was skipped because of a
        name collision in "skip" mode.
        """
        if name_collision_mode not in _COLLISION_MODES:
            raise ToolRegistrationError("name_collision_mode must be one of: 'raise', 'skip', 'replace'.")

        if isinstance(component, Tool):
            if name is not None or required_fields is not None or timeout_seconds is not None:
                raise ToolRegistrationError(
                    "name/required_fields/timeout_seconds apply to callables only; configure the Tool directly."
                )
            tool = component
        else:
            try:
                tool = Tool(
                    function=component,
                    name=name,
                    required_fields=tuple(required_fields) if required_fields is not None else None,
                    timeout_seconds=timeout_seconds,
                )
            except ToolDefinitionError as exc:
                raise ToolRegistrationError(f"cannot register {component!r}: {exc}") from exc

        if tool.name in self._tools:
            if name_collision_mode == "raise":
                raise ToolRegistrationError(f"Tool name collision: {tool.name!r} is already registered.")
            if name_collision_mode == "skip":
                logger.debug("Skipping registration of %r: name already registered", tool.name)
                return None

        self._tools[tool.name] = tool
        return tool

    def batch_register(
        self,
        components: Iterable[Tool | ToolFunction],
        *,
        name_collision_mode: str = "raise",
    ) -> list[Tool]:
        if name_collision_mode not in _COLLISION_MODES:
            raise ToolRegistrationError("name_collision_mode must be one of: 'raise', 'skip', 'replace'.")
        registered: list[Tool] = []
        for component in components:
            tool = self.register(component, name_collision_mode=name_collision_mode)
            if tool is not None:
                registered.append(tool)
        return registered

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #
    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolRegistrationError(f"Unknown tool: {name}")
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def remove(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def clear(self) -> None:
        self._tools.clear()

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)

    # ------------------------------------------------------------------ #
    # Prompt helpers
    # ------------------------------------------------------------------ #
    def actions_context(self) -> str:
        """One line per tool with its required argument names, for system prompts."""
        lines = []
        for tool in self._tools.values():
            fields: dict[str, Any] = {f: "..." for f in tool.required_fields}
            lines.append(TOOL_LINE_TEMPLATE.format(name=tool.name, fields=json.dumps(fields)))
        return "\n".join(lines) if lines else "(no tools registered)"
