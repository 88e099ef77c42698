from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from ..core.Exceptions import ToolDefinitionError, ToolInvocationError, ToolValidationError

logger = logging.getLogger(__name__)

__all__ = ["Tool", "ToolFunction", "format_missing", "REQUIRED_FIELDS"]

# Collaborator contract: (resolved_arguments, logging_sink) -> JSON-serializable result
ToolFunction = Callable[[Mapping[str, Any], logging.Logger], Union[Any, Awaitable[Any]]]


# ───────────────────────────────────────────────────────────────────────────────
# Required arguments per tool kind
# ───────────────────────────────────────────────────────────────────────────────
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "execute_shell_command": ("command",),
    "read_file": ("file_path",),
    "write_file": ("file_path", "content"),
    "append_to_file": ("file_path", "content"),
    "list_directory": ("directory_path",),
    "create_directory": ("directory_path",),
    "copy_files": ("source", "destination"),
    "move_files": ("source", "destination"),
    "delete_file": ("file_path",),
    "get_file_info": ("file_path",),
    "search_files": ("search_path", "pattern"),
    "find_and_replace": ("search_path", "search_text", "replace_text"),
    "ripgrep_search": ("pattern",),
    "todo_read": (),
    "todo_write": ("todos",),
    "browser_navigate": ("url",),
    "browser_interact": ("actions",),
    "http_fetch": ("url",),
}


def format_missing(missing: Sequence[str]) -> str:
    """'a is required' / 'a and b are required' / 'a, b, and c are required'."""
    names = list(missing)
    if len(names) == 1:
        return f"{names[0]} is required"
    if len(names) == 2:
        return f"{names[0]} and {names[1]} are required"
    return f"{', '.join(names[:-1])}, and {names[-1]} are required"


# ───────────────────────────────────────────────────────────────────────────────
# Tool primitive
# ───────────────────────────────────────────────────────────────────────────────
class Tool:
    """Named handler around one external tool implementation.

    A Tool exposes the two things the executor needs from a collaborator:

    - ``required_fields``: argument names that must be present (and not
      ``None``) before the implementation may be called. Defaults to the
      :data:`REQUIRED_FIELDS` entry for ``name``.
    - ``invoke(arguments, sink)``: await the implementation with the resolved
      arguments and a logger it may write progress to.

    The wrapped function may be a coroutine function or a plain callable.
    ``timeout_seconds`` bounds a single invocation; a timeout cancels only
    that call.
    """

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    def __init__(
        self,
        function: ToolFunction,
        name: Optional[str] = None,
        namespace: Optional[str] = None,
        description: Optional[str] = None,
        *,
        required_fields: Optional[Sequence[str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        if not callable(function):
            raise ToolDefinitionError(f"Tool function must be callable, got {type(function)!r}")

        inferred_name = name or getattr(function, "__name__", "") or ""
        if not isinstance(inferred_name, str) or not inferred_name.strip():
            raise ToolDefinitionError("Tool name must be a non-empty string.")

        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ToolDefinitionError("Tool timeout_seconds must be None or > 0.")

        self._function: ToolFunction = function
        self._name: str = inferred_name
        self._namespace: str = namespace or "default"
        self._description: str = (description or getattr(function, "__doc__", "") or "undescribed").strip() or "undescribed"
        if required_fields is None:
            required_fields = REQUIRED_FIELDS.get(inferred_name, ())
        self._required_fields: tuple[str, ...] = tuple(required_fields)
        self._timeout_seconds: Optional[float] = timeout_seconds

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def description(self) -> str:
        return self._description

    @property
    def function(self) -> ToolFunction:
        return self._function

    @property
    def required_fields(self) -> tuple[str, ...]:
        return self._required_fields

    @property
    def timeout_seconds(self) -> Optional[float]:
        return self._timeout_seconds

    @timeout_seconds.setter
    def timeout_seconds(self, value: Optional[float]) -> None:
        if value is not None and value <= 0:
            raise ToolDefinitionError("Tool timeout_seconds must be None or > 0.")
        self._timeout_seconds = value

    @property
    def full_name(self) -> str:
        """Fully-qualified tool name of the form ``Type.namespace.name``."""
        return f"{type(self).__name__}.{self._namespace}.{self._name}"

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #
    def missing_fields(self, arguments: Any) -> list[str]:
        """Required fields that are absent or ``None`` in `arguments`."""
        if not isinstance(arguments, Mapping):
            return list(self._required_fields)
        return [f for f in self._required_fields if arguments.get(f) is None]

    def validate(self, arguments: Any) -> None:
        """Raise ToolValidationError naming every missing required field."""
        missing = self.missing_fields(arguments)
        if missing:
            raise ToolValidationError(self._name, missing, format_missing(missing))

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def invoke(
        self,
        arguments: Mapping[str, Any],
        sink: Optional[logging.Logger] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """Invoke the implementation; failures surface as ToolInvocationError.

        `timeout` overrides ``timeout_seconds`` for this call only.
        """
        if not isinstance(arguments, Mapping):
            raise ToolInvocationError(f"{self._name}: arguments must be a mapping")

        limit = timeout if timeout is not None else self._timeout_seconds
        sink = sink or logger
        try:
            if limit is None:
                return await self._call(arguments, sink)
            return await asyncio.wait_for(self._call(arguments, sink), timeout=limit)
        except ToolInvocationError:
            raise
        except asyncio.TimeoutError as exc:
            if limit is None:
                raise ToolInvocationError(str(exc) or f"{self._name}: timed out") from exc
            raise ToolInvocationError(f"{self._name}: timed out after {limit:g}s") from exc
        except Exception as exc:
            raise ToolInvocationError(str(exc) or f"{self._name}: {type(exc).__name__}") from exc

    async def _call(self, arguments: Mapping[str, Any], sink: logging.Logger) -> Any:
        result = self._function(arguments, sink)
        if inspect.isawaitable(result):
            result = await result
        return result

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #
    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "namespace": self._namespace,
            "full_name": self.full_name,
            "description": self._description,
            "required_fields": list(self._required_fields),
            "timeout_seconds": self._timeout_seconds,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name} required={list(self._required_fields)}>"
