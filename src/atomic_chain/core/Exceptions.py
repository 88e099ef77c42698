# ───────────────────────────────────────────────────────────────────────────────
# Exceptions
# ───────────────────────────────────────────────────────────────────────────────
class AtomicChainError(RuntimeError):
    """Base class for every error raised by atomic_chain."""


class ConfigError(AtomicChainError, ValueError):
    """Raised when environment configuration cannot be interpreted."""


class LLMEngineError(AtomicChainError):
    """Raised when an LLM engine fails to complete an invocation."""


class ToolError(AtomicChainError):
    """Base exception for Tool-related errors."""


class ToolDefinitionError(ToolError):
    """Raised when a callable is incompatible at Tool construction time."""


class ToolInvocationError(ToolError):
    """Raised when the wrapped tool implementation fails or times out."""


class ToolValidationError(ToolError, ValueError):
    """Raised when required arguments are missing for a tool kind."""

    def __init__(self, tool_name: str, missing: list[str], message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.missing = list(missing)


class ToolRegistrationError(ToolError):
    """Raised when registering tools fails due to collisions or bad inputs."""


class TemplateError(AtomicChainError):
    """Base class for variable-reference errors."""


class TemplateResolutionError(TemplateError):
    """Raised when an inline template cannot be rendered."""


class CycleError(TemplateError):
    """Raised when the dependency graph of a batch is not acyclic."""

    def __init__(self, tool_id: str) -> None:
        super().__init__(f"Circular dependency detected involving tool: {tool_id}")
        self.tool_id = tool_id


class DecodeError(AtomicChainError, ValueError):
    """Raised when buffered stream text is not (yet) a valid JSON object."""
