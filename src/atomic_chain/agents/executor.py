"""
ToolExecutor

Runs one batch of tool invocations:

- computes an execution order with the primary strategy (dependency order);
  if that raises CycleError, the fallback strategy (batch order) is used for
  the whole batch instead
- processes calls strictly one at a time in that order
- resolves ``{{id.path}}`` references against the session context right before
  each call, so only results of calls processed earlier are visible
- validates required fields, invokes the tool, records ``{id, result}`` or
  ``{id, error}``; a failing call never stops the batch
- emits one progress line per completed or failed call
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from ..chaining import resolve_arguments, topological_order
from ..core.Exceptions import (
    CycleError,
    TemplateResolutionError,
    ToolInvocationError,
    ToolValidationError,
)
from ..tools import ToolRegistry, summarize_call, summarize_failure
from .invocations import ToolInvocation, ToolResult
from .session import ToolSession

logger = logging.getLogger(__name__)

__all__ = ["OrderStrategy", "ToolExecutor", "batch_order", "dependency_order"]

OrderStrategy = Callable[[Sequence[ToolInvocation]], list[str]]

_WRITE_TOOLS = ("write_file", "append_to_file")


def dependency_order(invocations: Sequence[ToolInvocation]) -> list[str]:
    """Topological order over ``{{id...}}`` references; raises CycleError."""
    return topological_order(invocations)


def batch_order(invocations: Sequence[ToolInvocation]) -> list[str]:
    """Original batch order (first occurrence of each id)."""
    return list(dict.fromkeys(inv.id for inv in invocations))


class ToolExecutor:
    def __init__(
        self,
        registry: ToolRegistry,
        *,
        order_strategy: OrderStrategy = dependency_order,
        fallback_strategy: OrderStrategy = batch_order,
        progress: Optional[Callable[[str], Any]] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self._registry = registry
        self._order_strategy = order_strategy
        self._fallback_strategy = fallback_strategy
        self._progress = progress
        self._default_timeout = default_timeout

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Ordering
    # ------------------------------------------------------------------ #
    def plan(self, invocations: Sequence[ToolInvocation]) -> list[str]:
        """Execution order for the batch; falls back once on CycleError."""
        try:
            return self._order_strategy(invocations)
        except CycleError as exc:
            logger.warning("%s; executing batch in original order", exc)
            return self._fallback_strategy(invocations)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #
    async def execute(
        self,
        invocations: Sequence[ToolInvocation | Mapping[str, Any]],
        session: Optional[ToolSession] = None,
    ) -> list[ToolResult]:
        """Execute a batch and return results in processing order."""
        batch = [
            inv if isinstance(inv, ToolInvocation) else ToolInvocation.from_dict(inv, index=i)
            for i, inv in enumerate(invocations)
        ]
        if not batch:
            return []

        session = session if session is not None else ToolSession()
        by_id: dict[str, ToolInvocation] = {}
        for inv in batch:
            by_id.setdefault(inv.id, inv)

        order = self.plan(batch)
        logger.debug("Executing %d tool call(s) in order %s", len(order), order)

        results: list[ToolResult] = []
        for call_id in order:
            inv = by_id.get(call_id)
            if inv is None:
                continue
            results.append(await self._run_one(inv, session))
        return results

    async def _run_one(self, inv: ToolInvocation, session: ToolSession) -> ToolResult:
        args: Any = inv.arguments
        try:
            args = resolve_arguments(inv.arguments, session.context)

            if not self._registry.has(inv.name):
                return self._failed(inv, args, f"Unknown tool: {inv.name}")

            tool = self._registry.get(inv.name)
            tool.validate(args)
            timeout = tool.timeout_seconds if tool.timeout_seconds is not None else self._default_timeout
            result = await tool.invoke(args, logger.getChild(tool.name), timeout=timeout)
        except (ToolValidationError, ToolInvocationError, TemplateResolutionError) as exc:
            return self._failed(inv, args, str(exc))

        session.record_result(inv.id, result)
        self._after_success(inv, args, result, session)
        return ToolResult(id=inv.id, result=result)

    def _after_success(self, inv: ToolInvocation, args: Any, result: Any, session: ToolSession) -> None:
        """Write tracking and progress output; failures here are logged, never raised."""
        try:
            if inv.name in _WRITE_TOOLS:
                report = session.writes.record_write(args.get("file_path"), args.get("content"))
                if report.warning:
                    logger.warning("%s (call %s)", report.warning, inv.id)
            self._emit(summarize_call(inv.name, args, result), error=False)
        except Exception:
            logger.exception("Post-call bookkeeping failed for %s (%s)", inv.id, inv.name)

    def _failed(self, inv: ToolInvocation, args: Any, message: str) -> ToolResult:
        logger.debug("Tool call %s (%s) failed with args %r", inv.id, inv.name, args)
        self._emit(summarize_failure(inv.name, message), error=True)
        return ToolResult(id=inv.id, error=message)

    def _emit(self, line: str, *, error: bool) -> None:
        if error:
            logger.error(line)
        else:
            logger.info(line)
        if self._progress is not None:
            try:
                self._progress(line)
            except Exception:
                logger.exception("Progress callback failed")
