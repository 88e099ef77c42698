from .LLMEngines import OpenAIStreamEngine, StreamEngine

__all__ = ["OpenAIStreamEngine", "StreamEngine"]
