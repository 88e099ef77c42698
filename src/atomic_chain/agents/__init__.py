from .base import ChainAgent
from .executor import (
    OrderStrategy,
    ToolExecutor,
    batch_order,
    dependency_order,
)
from .invocations import ToolInvocation, ToolResult, parse_tool_calls
from .session import ToolSession, WriteReport, WriteTracker

__all__ = ["ChainAgent",
           "OrderStrategy",
           "ToolExecutor",
           "ToolInvocation",
           "ToolResult",
           "ToolSession",
           "WriteReport",
           "WriteTracker",
           "batch_order",
           "dependency_order",
           "parse_tool_calls"]
