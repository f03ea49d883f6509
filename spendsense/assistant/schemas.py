"""Assistant Pydantic schemas for messages, tool calls and run results."""
import json
from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Any, Optional, Literal
from datetime import datetime
from enum import Enum


# ============================================================================
# TRANSCRIPT
# ============================================================================

class ChatMessage(BaseModel):
    """A single transcript message."""
    role: Literal["system", "user", "assistant", "tool"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    name: Optional[str] = Field(None, description="Tool name for tool messages")
    tool_call_id: Optional[str] = Field(None, description="Correlation id of the tool call answered")

    def to_payload(self) -> Dict[str, Any]:
        """Render in the completion endpoint's wire shape."""
        return self.model_dump(exclude_none=True)


class ToolCallRequest(BaseModel):
    """One tool invocation requested by the model."""
    id: str = Field(..., description="Correlation id chosen by the completion endpoint")
    tool_name: str
    arguments_json: str = Field("{}", description="Raw JSON arguments as sent by the model")


class ToolResult(BaseModel):
    """Outcome of one dispatched tool call. Produced for successes and failures alike."""
    tool_call_id: str
    tool_name: str
    ok: bool
    payload: Any = None
    error: Optional[str] = None
    content: str = Field(..., description="JSON text sent back to the model")

    @classmethod
    def failure(cls, tool_call_id: str, tool_name: str, error: str) -> "ToolResult":
        return cls(
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            ok=False,
            error=error,
            content=json.dumps({"error": error}),
        )

    def to_message(self) -> Dict[str, Any]:
        return ChatMessage(
            role="tool",
            content=self.content,
            name=self.tool_name,
            tool_call_id=self.tool_call_id,
        ).to_payload()


class CompletionTurn(BaseModel):
    """What the completion endpoint returned for one turn."""
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    raw_message: Dict[str, Any] = Field(
        default_factory=dict,
        description="The assistant message exactly as returned, echoed back into the transcript",
    )

    def assistant_message(self) -> Dict[str, Any]:
        """The tool-requesting message to append before the tool results."""
        if self.raw_message:
            return dict(self.raw_message)
        return {
            "role": "assistant",
            "content": self.content or "",
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.tool_name, "arguments": call.arguments_json},
                }
                for call in self.tool_calls
            ],
        }


# ============================================================================
# RUN STATE
# ============================================================================

class RunState(str, Enum):
    """Lifecycle of one orchestration run."""
    INIT = "init"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    FAILED = "failed"


class RunResult(BaseModel):
    """Final answer of a run plus what it took to get there."""
    answer: str
    tools_used: List[str] = Field(default_factory=list, description="Distinct tool names, in first-use order")
    iterations: int = 0
    state: RunState = RunState.DONE
    hit_iteration_limit: bool = False


# ============================================================================
# CHAT REQUEST/RESPONSE
# ============================================================================

class HistoryMessage(BaseModel):
    """A prior turn supplied by the client."""
    role: Literal["user", "assistant", "system"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")


class ChatRequest(BaseModel):
    """Request to ask the assistant a question."""
    user_id: str = Field(..., min_length=1, description="Caller identity; scopes every data lookup")
    message: str = Field(..., description="User's question")
    conversation_history: List[HistoryMessage] = Field(
        default_factory=list,
        description="Previous messages in this conversation"
    )

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message is required and must be a non-empty string")
        return value


class ChatResponse(BaseModel):
    """Response from the assistant chat endpoint."""
    id: str = Field(..., description="Saved query id, or a generated id if saving failed")
    query: str
    response: str
    tools_used: List[str] = Field(default_factory=list)
    iterations: int = 0
    timestamp: datetime


class AssistantStatus(BaseModel):
    """Health probe for the assistant."""
    status: str
    completion_configured: bool
    message: str
