from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from ..core.Exceptions import LLMEngineError
from ..core.Prompts import SYSTEM_PROMPT
from ..engines.LLMEngines import StreamEngine
from ..streaming import StreamingSession
from ..tools import ToolRegistry
from .executor import ToolExecutor
from .invocations import parse_tool_calls
from .session import ToolSession

logger = logging.getLogger(__name__)

__all__ = ["ChainAgent"]


# ───────────────────────────────────────────────────────────────────────────────
# ChainAgent
# ───────────────────────────────────────────────────────────────────────────────
class ChainAgent:
    """
    One request/execute round trip.

    - `invoke(prompt, session=None) -> dict`
      1) Build `[system, user]` messages; the system prompt lists every
         registered tool with its required fields.
      2) Stream the model response through a fresh StreamingSession.
      3) Parse `tools` from the response into ToolInvocations.
      4) Execute them with a ToolExecutor against `session` (a new
         ToolSession per call when omitted).
      5) Return the response with `tool_results` attached.

    Parameters
    ----------
    engine : StreamEngine
        Engine used to stream the model call.
    registry : ToolRegistry
        Tools the model may call.
    system_prompt : str
        ``str.format`` template with a ``{TOOLS}`` placeholder.
    on_thoughts, on_content, live :
        Forwarded to each StreamingSession.
    progress :
        Receives one summary line per completed or failed tool call.
    tool_timeout :
        Default per-call timeout for tools without their own.
    """

    def __init__(
        self,
        engine: StreamEngine,
        registry: ToolRegistry,
        *,
        system_prompt: str = SYSTEM_PROMPT,
        on_thoughts: Optional[Callable[[str, bool], Any]] = None,
        on_content: Optional[Callable[[str, bool], Any]] = None,
        live: bool = False,
        progress: Optional[Callable[[str], Any]] = None,
        tool_timeout: Optional[float] = None,
    ) -> None:
        if not isinstance(engine, StreamEngine):
            raise TypeError(f"engine must be a StreamEngine, got {type(engine).__name__}")
        if not isinstance(registry, ToolRegistry):
            raise TypeError(f"registry must be a ToolRegistry, got {type(registry).__name__}")

        self._engine = engine
        self._registry = registry
        self._system_prompt = system_prompt
        self._on_thoughts = on_thoughts
        self._on_content = on_content
        self._live = live
        self._executor = ToolExecutor(registry, progress=progress, default_timeout=tool_timeout)
        self._invoke_lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def engine(self) -> StreamEngine:
        return self._engine

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def executor(self) -> ToolExecutor:
        return self._executor

    @property
    def system_prompt(self) -> str:
        """The system message sent with every request."""
        return self._system_prompt.format(TOOLS=self._registry.actions_context())

    # ------------------------------------------------------------------ #
    # Invocation
    # ------------------------------------------------------------------ #
    def build_messages(self, prompt: str) -> List[Dict[str, str]]:
        if not isinstance(prompt, str):
            raise TypeError("ChainAgent.invoke expects a prompt string.")
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": prompt},
        ]

    async def invoke(self, prompt: str, session: Optional[ToolSession] = None) -> Dict[str, Any]:
        messages = self.build_messages(prompt)

        async with self._invoke_lock:
            logger.info("[%s.invoke started]", type(self).__name__)
            stream = StreamingSession(
                on_thoughts=self._on_thoughts,
                on_content=self._on_content,
                live=self._live,
            )
            try:
                response = await self._engine.invoke(messages, stream)
            except LLMEngineError as exc:
                logger.error("LLM request failed: %s", exc)
                return {
                    "content": f"Error: {exc}",
                    "reasoning": "API request failed",
                    "tool_results": [],
                }

            invocations = parse_tool_calls(response.get("tools"))
            results = []
            if invocations:
                logger.debug("Response requested %d tool call(s)", len(invocations))
                results = await self._executor.execute(invocations, session)

            logger.info("[%s.invoke finished]", type(self).__name__)
            return {**response, "tool_results": [r.to_dict() for r in results]}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self._engine.to_dict(),
            "tools": self._registry.names,
            "live": self._live,
        }
