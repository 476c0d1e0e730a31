import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from handyai.api.deps import get_llm_service, get_tool_executor, get_tool_registry
from handyai.core.config import settings
from handyai.core.rate_limiter import limiter
from handyai.schemas.chat import ChatRequest, ChatResponse
from handyai.services.crm.store import CRMStore
from handyai.services.llm.llm_service import LLMService, LLMServiceError
from handyai.services.tools.agent import LLM_ERROR_MESSAGE, ToolCallingAgent
from handyai.services.tools.executor import ToolExecutor
from handyai.services.tools.registry import ToolRegistry

logger = logging.getLogger("handyai.api.chat")

router = APIRouter()


@router.post("", response_model=ChatResponse, status_code=status.HTTP_200_OK)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    payload: ChatRequest,
    llm_service: LLMService = Depends(get_llm_service),
    registry: ToolRegistry = Depends(get_tool_registry),
    executor: ToolExecutor = Depends(get_tool_executor),
):
    """
    Send the conversation to the assistant and get its reply.

    - **messages**: Full conversation, oldest first ({role, content})
    - **stream**: Return the reply as a streamed text/plain body
    """
    conversation = [m.model_dump() for m in payload.messages]

    if payload.stream:
        return StreamingResponse(
            _stream_reply(request, conversation, llm_service, registry),
            media_type="text/plain; charset=utf-8",
        )

    agent = ToolCallingAgent(llm_service, executor, registry)
    try:
        result = await agent.run(conversation)
    except LLMServiceError as e:
        logger.error(f"Chat request failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": LLM_ERROR_MESSAGE, "details": e.detail},
        )

    return ChatResponse.model_validate(result)


async def _stream_reply(
    request: Request,
    conversation: list,
    llm_service: LLMService,
    registry: ToolRegistry,
) -> AsyncIterator[str]:
    # The stream outlives the request dependencies, so it opens its own session
    async with request.app.state.database.session() as session:
        agent = ToolCallingAgent(llm_service, ToolExecutor(registry, CRMStore(session)), registry)
        async for event in agent.run_streaming(conversation):
            if event["type"] == "token":
                yield event["content"]
            elif event["type"] == "error":
                yield event["error"]
