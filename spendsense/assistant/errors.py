"""Assistant error taxonomy.

Tool-local failures (UnknownToolError, ToolExecutionError) are caught by the
dispatcher and turned into tool messages the model can react to. Completion
endpoint failures and deadline expiry end the run and reach the caller.
"""
from enum import Enum


class AssistantError(Exception):
    """Base class for assistant errors."""


class MissingCredentialError(AssistantError):
    """The completion endpoint credential is not configured."""

    def __init__(self, setting_name: str = "GROQ_API_KEY"):
        self.setting_name = setting_name
        super().__init__(
            f"Completion API key is not configured. Please set the {setting_name} environment variable."
        )


class UnknownToolError(AssistantError):
    """The model asked for a tool that is not in the registry."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class ToolExecutionError(AssistantError):
    """A tool failed while running (bad arguments, data layer error, timeout)."""

    def __init__(self, tool_name: str, reason: str):
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool {tool_name} failed: {reason}")


class CompletionErrorCategory(str, Enum):
    """Why a completion endpoint call failed."""
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    BAD_RESPONSE = "bad_response"
    GENERIC = "generic"


class CompletionEndpointError(AssistantError):
    """The completion endpoint could not produce a turn. Fatal to the run."""

    def __init__(self, category: CompletionErrorCategory, message: str):
        self.category = category
        self.message = message
        super().__init__(f"Completion endpoint failed ({category.value}): {message}")


class RunTimeoutError(AssistantError):
    """The run did not finish before its deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Assistant run exceeded its {timeout_seconds:g}s deadline")
