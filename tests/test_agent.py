"""End-to-end tests for ChainAgent with a replaying engine and spy tools."""

from __future__ import annotations

import json

import pytest

from atomic_chain.agents import ChainAgent, ToolSession
from atomic_chain.core.Exceptions import LLMEngineError
from atomic_chain.engines import StreamEngine
from atomic_chain.tools import ToolRegistry


def sse(fragment: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": fragment}}]}) + "\n\n"


def chunked(text: str, size: int = 7) -> list[str]:
    return [sse(text[i:i + size]) for i in range(0, len(text), size)] + ["data: [DONE]\n\n"]


class ReplayEngine(StreamEngine):
    def __init__(self, frames, error: Exception | None = None) -> None:
        super().__init__(name="replay", max_retries=0)
        self.frames = frames
        self.error = error
        self.messages = None

    def _build_provider_payload(self, messages):
        self.messages = messages
        return messages

    async def _stream_frames(self, payload):
        if self.error is not None:
            raise self.error
        for frame in self.frames:
            yield frame


class Recorder:
    def __init__(self, name: str, result) -> None:
        self.name = name
        self.result = result
        self.calls: list[dict] = []

    def __call__(self, args, sink):
        self.calls.append(dict(args))
        return self.result(args) if callable(self.result) else self.result


RESPONSE = {
    "thoughts": "List then report.",
    "content": "Writing a report.",
    "tools": [
        {
            "id": "t2",
            "type": "function",
            "function": {
                "name": "write_file",
                "arguments": {"file_path": "./report.txt", "content": "Found {{t1.count}} files"},
            },
        },
        {
            "id": "t1",
            "type": "function",
            "function": {"name": "list_directory", "arguments": {"directory_path": "./src"}},
        },
    ],
}


@pytest.fixture
def tools():
    lister = Recorder("list_directory", {"count": 5, "files": ["a.py"]})
    writer = Recorder("write_file", lambda a: {"bytesWritten": len(a["content"])})
    registry = ToolRegistry()
    registry.register(lister, name=lister.name)
    registry.register(writer, name=writer.name)
    return registry, lister, writer


class TestChainAgent:
    @pytest.mark.asyncio
    async def test_round_trip(self, tools):
        registry, lister, writer = tools
        thoughts: list[tuple] = []
        agent = ChainAgent(
            ReplayEngine(chunked(json.dumps(RESPONSE))),
            registry,
            on_thoughts=lambda text, partial: thoughts.append((text, partial)),
        )

        result = await agent.invoke("summarize ./src")

        assert result["content"] == "Writing a report."
        assert result["tool_results"] == [
            {"id": "t1", "result": {"count": 5, "files": ["a.py"]}},
            {"id": "t2", "result": {"bytesWritten": 13}},
        ]
        assert writer.calls == [{"file_path": "./report.txt", "content": "Found 5 files"}]
        assert thoughts == [("List then report.", False)]

    @pytest.mark.asyncio
    async def test_system_prompt_lists_tools(self, tools):
        registry, _, _ = tools
        engine = ReplayEngine(chunked('{"content": "hi"}'))
        agent = ChainAgent(engine, registry)

        await agent.invoke("hello")

        system, user = engine.messages
        assert system["role"] == "system"
        assert "- list_directory: " in system["content"]
        assert "{{t1.count}}" in system["content"]
        assert user == {"role": "user", "content": "hello"}

    @pytest.mark.asyncio
    async def test_no_tools(self, tools):
        registry, lister, _ = tools
        agent = ChainAgent(ReplayEngine(chunked('{"thoughts": "t", "content": "c"}')), registry)
        result = await agent.invoke("hi")
        assert result == {"thoughts": "t", "content": "c", "tool_results": []}
        assert lister.calls == []

    @pytest.mark.asyncio
    async def test_engine_failure(self, tools):
        registry, _, _ = tools
        agent = ChainAgent(ReplayEngine([], error=LLMEngineError("server down")), registry)
        result = await agent.invoke("hi")
        assert result == {
            "content": "Error: server down",
            "reasoning": "API request failed",
            "tool_results": [],
        }

    @pytest.mark.asyncio
    async def test_explicit_session_collects_results(self, tools):
        registry, _, _ = tools
        session = ToolSession()
        agent = ChainAgent(ReplayEngine(chunked(json.dumps(RESPONSE))), registry)
        await agent.invoke("go", session)
        assert session.context["t1"]["count"] == 5
        assert session.writes.write_count("./report.txt") == 1

    @pytest.mark.asyncio
    async def test_degraded_response_still_returns(self, tools):
        registry, _, _ = tools
        agent = ChainAgent(ReplayEngine(chunked("plain words")), registry)
        result = await agent.invoke("hi")
        assert result["degraded"] is True
        assert result["content"] == "plain words"
        assert result["tool_results"] == []

    def test_rejects_wrong_collaborators(self, tools):
        registry, _, _ = tools
        with pytest.raises(TypeError):
            ChainAgent(object(), registry)
        with pytest.raises(TypeError):
            ChainAgent(ReplayEngine([]), {})
