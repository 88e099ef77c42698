from __future__ import annotations

# LLMEngines.py
# Engines are stateless adapters around provider SDKs. They stream one chat
# completion into a StreamingSession and return the decoded response object.

import asyncio
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from openai import APIConnectionError, AsyncOpenAI

from ..core.Exceptions import LLMEngineError
from ..streaming import StreamingSession

logger = logging.getLogger(__name__)

__all__ = ["OpenAIStreamEngine", "StreamEngine"]

# Local OpenAI-compatible servers ignore the key, but the SDK requires one.
_PLACEHOLDER_KEY = "sk-no-key-required"


class StreamEngine(ABC):
    """
    Base template-method primitive for streaming LLM providers.

    Public contract
    ---------------
    - `await invoke(messages, session=None) -> dict` streams one completion
      into `session` (a fresh StreamingSession when omitted) and returns
      `session.finish()`.

    Retries happen only while no frame has been received yet: once output has
    reached the session, a failure is final.
    """

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_backoff_base: float = 0.5,
        retry_backoff_max: float = 8.0,
    ) -> None:
        """
        Parameters
        ----------
        name:
            Optional human-friendly identifier for logging/introspection.
        timeout_seconds:
            Per-request timeout handed to the provider SDK.
        max_retries:
            Maximum number of *retries* after the initial attempt.
        retry_backoff_base:
            Base seconds for exponential backoff (approx base * 2^(attempt-1)).
        retry_backoff_max:
            Upper bound in seconds for backoff delay.
        """
        self._name = name or type(self).__name__
        self._timeout_seconds = float(timeout_seconds)
        self._max_retries = int(max_retries)
        self._retry_backoff_base = float(retry_backoff_base)
        self._retry_backoff_max = float(retry_backoff_max)

    @property
    def name(self) -> str:
        return self._name

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # Template `invoke` --------------------------------------------------- #

    async def invoke(
        self,
        messages: List[Dict[str, str]],
        session: Optional[StreamingSession] = None,
    ) -> Dict[str, Any]:
        """
        Template method:

        1. Normalize and validate `messages`.
        2. Build the provider payload.
        3. Stream frames into the session with retries.
        4. Return the session's final response object.

        Subclasses customize behavior via the protected hooks below.
        """
        session = session if session is not None else StreamingSession()
        start = time.time()
        try:
            normalized = self._normalize_messages(messages)
            payload = self._build_provider_payload(normalized)
            await self._stream_with_retries(payload, session)
            return session.finish()
        except LLMEngineError:
            raise
        except Exception as exc:
            raise LLMEngineError(f"{self._name}.invoke failed: {exc}") from exc
        finally:
            logger.debug("StreamEngine %s.invoke completed in %.3fs", self._name, time.time() - start)

    # --------------------------------------------------------------------- #
    # Shared helpers used by the template
    # --------------------------------------------------------------------- #

    def _normalize_messages(self, messages: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """
        - `messages` must be a non-empty list of mappings
        - each entry needs string `role` and `content`
        - `role` is lowercased
        """
        if not isinstance(messages, list):
            raise LLMEngineError("StreamEngine.invoke: messages must be a list")
        if not messages:
            raise LLMEngineError("StreamEngine.invoke: messages must not be empty")

        normalized: List[Dict[str, str]] = []
        for idx, msg in enumerate(messages):
            if not isinstance(msg, Mapping):
                raise LLMEngineError(
                    f"StreamEngine.invoke: message {idx} is not a mapping (got {type(msg)!r})"
                )
            role = msg.get("role")
            content = msg.get("content")
            if not isinstance(role, str) or not isinstance(content, str):
                raise LLMEngineError(
                    "StreamEngine.invoke: each message must have 'role' and 'content' as strings"
                )
            normalized.append({"role": role.lower(), "content": content})
        return normalized

    async def _stream_with_retries(self, payload: Any, session: StreamingSession) -> None:
        attempt = 0
        while True:
            attempt += 1
            received = False
            try:
                async with aclosing(self._stream_frames(payload)) as frames:
                    async for frame in frames:
                        received = True
                        if not session.feed_frame(frame):
                            break
                return
            except LLMEngineError:
                raise
            except Exception as exc:
                if received or not self._should_retry(exc, attempt):
                    raise
                sleep = min(
                    self._retry_backoff_base * (2 ** (attempt - 1)),
                    self._retry_backoff_max,
                )
                sleep *= random.uniform(0.8, 1.2)
                logger.debug(
                    "StreamEngine %s attempt %d failed with %r; retrying in %.2fs",
                    self._name,
                    attempt,
                    exc,
                    sleep,
                )
                await asyncio.sleep(sleep)

    def _should_retry(self, exc: Exception, attempt: int) -> bool:
        """Retry timeout/connection errors, at most `max_retries` times."""
        if attempt > self._max_retries:
            return False
        return isinstance(exc, (TimeoutError, ConnectionError, asyncio.TimeoutError))

    # --------------------------------------------------------------------- #
    # Abstract hooks for subclasses
    # --------------------------------------------------------------------- #

    @abstractmethod
    def _build_provider_payload(self, messages: List[Dict[str, str]]) -> Any:
        """Convert normalized messages into the provider-specific request."""
        raise NotImplementedError

    @abstractmethod
    def _stream_frames(self, payload: Any) -> AsyncIterator[str]:
        """Open one streaming request and yield its raw transport frames."""
        raise NotImplementedError

    # --------------------------------------------------------------------- #
    # Introspection
    # --------------------------------------------------------------------- #

    def to_dict(self) -> Dict[str, Any]:
        """Shallow, non-secret configuration snapshot."""
        return {
            "name": self._name,
            "timeout_seconds": self._timeout_seconds,
            "max_retries": self._max_retries,
            "provider": type(self).__name__,
        }


# ── OPENAI-COMPATIBLE (chat completions, SSE) ──────────────────────────────────
class OpenAIStreamEngine(StreamEngine):
    """
    Streams `/v1/chat/completions` from any OpenAI-compatible server
    (llama.cpp, vLLM, OpenAI itself) and hands each raw SSE line to the
    session.
    """

    def __init__(
        self,
        model: str,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        *,
        name: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_backoff_base: float = 0.5,
        retry_backoff_max: float = 8.0,
    ) -> None:
        super().__init__(
            name=name or f"openai:{model}",
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            retry_backoff_base=retry_backoff_base,
            retry_backoff_max=retry_backoff_max,
        )
        # StreamEngine handles retries.
        self.llm = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or os.getenv("OPENAI_API_KEY") or _PLACEHOLDER_KEY,
            timeout=self._timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.base_url = base_url
        self.temperature = float(temperature)
        self.max_tokens = int(max_tokens)

    def _build_provider_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": True,
        }

    async def _stream_frames(self, payload: Dict[str, Any]) -> AsyncIterator[str]:
        async with self.llm.chat.completions.with_streaming_response.create(**payload) as response:
            async for line in response.iter_lines():
                yield line

    def _should_retry(self, exc: Exception, attempt: int) -> bool:
        if attempt > self._max_retries:
            return False
        return isinstance(exc, APIConnectionError) or super()._should_retry(exc, attempt)

    def to_dict(self) -> OrderedDict[str, Any]:
        base = OrderedDict(super().to_dict())
        base.update(
            OrderedDict(
                model=self.model,
                base_url=self.base_url,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        )
        return base
