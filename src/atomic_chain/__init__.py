from importlib.metadata import PackageNotFoundError, version

try:  # populated when installed or when a wheel is built
    __version__ = version("atomic-chain")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .core import NO_VAL, ChainConfig, configure_logging, load_config
from .agents import ChainAgent, ToolExecutor, ToolInvocation, ToolResult, ToolSession
from .engines import OpenAIStreamEngine, StreamEngine
from .streaming import IncrementalDecoder, StreamingSession
from .tools import Tool, ToolRegistry

__all__ = [
    "NO_VAL",
    "ChainAgent",
    "ChainConfig",
    "IncrementalDecoder",
    "OpenAIStreamEngine",
    "StreamEngine",
    "StreamingSession",
    "Tool",
    "ToolExecutor",
    "ToolInvocation",
    "ToolRegistry",
    "ToolResult",
    "ToolSession",
    "configure_logging",
    "load_config",
    ]
