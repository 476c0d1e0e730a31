"""
Tool invocation endpoint (JSON-RPC 2.0 flavoured).

Exposes the tool registry to external callers with the methods `tools/call`,
`tools/list`, `resources/list` and `resources/read`. Tool calls run through the
same ToolExecutor as the chat assistant.
"""

import json
import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from handyai.api.deps import get_store, get_tool_executor, get_tool_registry
from handyai.schemas.customer import CustomerListItem
from handyai.schemas.mcp import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ResourceReadParams,
    ToolCallParams,
)
from handyai.schemas.relations import OfferWithCustomer
from handyai.services.crm.store import CRMStore
from handyai.services.tools.executor import ToolExecutor
from handyai.services.tools.registry import ToolRegistry

logger = logging.getLogger("handyai.api.mcp")

router = APIRouter()

RESOURCES = [
    {
        "uri": "crm://customers/all",
        "mimeType": "application/json",
        "name": "Alle Kunden",
        "description": "Übersicht über alle Kunden und Interessenten",
    },
    {
        "uri": "crm://offers/all",
        "mimeType": "application/json",
        "name": "Alle Angebote",
        "description": "Übersicht über alle erstellten Angebote",
    },
    {
        "uri": "crm://stats/overview",
        "mimeType": "application/json",
        "name": "CRM Statistiken",
        "description": "Übersicht über CRM-Kennzahlen",
    },
]


class JsonRpcFailure(Exception):
    def __init__(self, code: int, message: str, http_status: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status


def _result(request_id: Optional[Union[int, str]], result: Dict[str, Any]) -> Dict[str, Any]:
    return JsonRpcResponse(id=request_id, result=result).model_dump(exclude_none=True)


def _error_response(request_id: Optional[Union[int, str]], failure: JsonRpcFailure) -> JSONResponse:
    body = JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=failure.code, message=failure.message),
    ).model_dump(exclude_none=True)
    return JSONResponse(status_code=failure.http_status, content=body)


def _params(model, params: Dict[str, Any]):
    try:
        return model.model_validate(params)
    except ValidationError:
        raise JsonRpcFailure(INVALID_REQUEST, "Invalid request")


async def _read_resource(uri: str, store: CRMStore) -> Any:
    if uri == "crm://customers/all":
        return [CustomerListItem.from_summary(s).to_json() for s in await store.list_customers()]
    if uri == "crm://offers/all":
        return [OfferWithCustomer.model_validate(o).to_json() for o in await store.list_offers()]
    if uri == "crm://stats/overview":
        return await store.get_statistics()
    raise JsonRpcFailure(INVALID_REQUEST, f"Unknown resource: {uri}")


@router.post("")
async def handle_rpc(
    request: Request,
    store: CRMStore = Depends(get_store),
    registry: ToolRegistry = Depends(get_tool_registry),
    executor: ToolExecutor = Depends(get_tool_executor),
):
    """
    Dispatch one JSON-RPC request.

    Errors: unknown tool or method → -32601 (400), malformed request or unknown
    resource → -32600 (400), unexpected failure → -32603 (500).
    """
    request_id = None
    try:
        try:
            body = await request.json()
            rpc = JsonRpcRequest.model_validate(body)
        except (ValueError, ValidationError):
            raise JsonRpcFailure(INVALID_REQUEST, "Invalid request")

        request_id = rpc.id
        logger.info(f"JSON-RPC request: {rpc.method}")

        if rpc.method == "tools/call":
            params = _params(ToolCallParams, rpc.params)
            if params.name not in registry:
                raise JsonRpcFailure(METHOD_NOT_FOUND, f"Unknown tool: {params.name}")
            result = await executor.execute(params.name, params.arguments)
            return _result(request_id, {
                "content": [{"type": "text", "text": result.to_message_content()}],
                "isError": not result.success,
            })

        if rpc.method == "tools/list":
            return _result(request_id, {"tools": registry.list_tools()})

        if rpc.method == "resources/list":
            return _result(request_id, {"resources": RESOURCES})

        if rpc.method == "resources/read":
            params = _params(ResourceReadParams, rpc.params)
            data = await _read_resource(params.uri, store)
            return _result(request_id, {
                "contents": [{
                    "uri": params.uri,
                    "mimeType": "application/json",
                    "text": json.dumps(data, ensure_ascii=False, indent=2, default=str),
                }]
            })

        raise JsonRpcFailure(METHOD_NOT_FOUND, f"Method not found: {rpc.method}")

    except JsonRpcFailure as failure:
        return _error_response(request_id, failure)
    except Exception as e:
        logger.exception(f"JSON-RPC request failed: {e}")
        return _error_response(
            request_id,
            JsonRpcFailure(INTERNAL_ERROR, "Internal error", status.HTTP_500_INTERNAL_SERVER_ERROR),
        )
