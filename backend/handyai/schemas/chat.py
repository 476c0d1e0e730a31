from typing import Any, Dict, List, Literal

from pydantic import Field

from handyai.schemas.common import CamelModel


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(CamelModel):
    """The client resends the whole conversation with every request."""

    messages: List[ChatMessage] = Field(..., min_length=1)
    stream: bool = False


class ChatToolResult(CamelModel):
    tool_call_id: str
    tool_name: str
    args: Any = None
    result: Dict[str, Any]


class ChatUsage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(CamelModel):
    content: str
    tool_results: List[ChatToolResult] = []
    usage: ChatUsage = Field(default_factory=ChatUsage)
