"""JSON-RPC 2.0 envelopes of the tool invocation endpoint."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

JSONRPC_VERSION = "2.0"

# JSON-RPC error codes
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: Optional[Union[int, str]] = None
    method: str = Field(..., min_length=1)
    params: Dict[str, Any] = Field(default_factory=dict)


class ToolCallParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: Any = Field(default_factory=dict)


class ResourceReadParams(BaseModel):
    uri: str = Field(..., min_length=1)


class JsonRpcError(BaseModel):
    code: int
    message: str


class JsonRpcResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: Optional[Union[int, str]] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JsonRpcError] = None
