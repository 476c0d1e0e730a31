from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from handyai.services.crm.store import CRMStore
from handyai.services.llm.llm_service import LLMService
from handyai.services.tools.executor import ToolExecutor
from handyai.services.tools.registry import ToolRegistry


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        yield session


def get_store(db: AsyncSession = Depends(get_db)) -> CRMStore:
    return CRMStore(db)


def get_tool_registry(request: Request) -> ToolRegistry:
    return request.app.state.tool_registry


def get_tool_executor(
    store: CRMStore = Depends(get_store),
    registry: ToolRegistry = Depends(get_tool_registry),
) -> ToolExecutor:
    return ToolExecutor(registry, store)


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service
