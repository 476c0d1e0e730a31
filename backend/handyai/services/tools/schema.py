"""
Tool Definition Schema - OpenAI Function Calling Format

Pydantic models for tool definitions, tool calls and tool results, plus the
uniform result envelope every CRM tool returns:

    {"success": bool, <entity or entities>, "count"?, "message": str, "error"?: str, "errorCode"?: str}
"""

from typing import Dict, Any, List, Optional, Type
from enum import Enum
import json

from pydantic import BaseModel, ConfigDict, Field


class ToolCategory(str, Enum):
    """Categories of tools for organization"""
    CUSTOMER = "customer"
    OFFER = "offer"
    INVOICE = "invoice"
    APPOINTMENT = "appointment"
    REPORTING = "reporting"


class ToolErrorCode(str, Enum):
    """Machine-readable failure classes carried in `errorCode`"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def success_envelope(message: str, **payload: Any) -> Dict[str, Any]:
    return {"success": True, **payload, "message": message}


def failure_envelope(message: str, error: str, code: ToolErrorCode) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "error": error,
        "errorCode": code.value,
    }


class ToolSchema(BaseModel):
    """
    OpenAI-compatible function/tool definition.

    This schema follows the OpenAI function calling format:
    https://platform.openai.com/docs/guides/function-calling
    """
    name: str = Field(..., description="Unique tool identifier (snake_case)")
    description: str = Field(..., description="Clear description of what the tool does and when to use it")
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
        description="JSON Schema for the tool's parameters"
    )

    def to_openai_format(self) -> Dict[str, Any]:
        """Convert to OpenAI tools API format"""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }

    def to_mcp_format(self) -> Dict[str, Any]:
        """Convert to the `tools/list` entry format of the JSON-RPC endpoint"""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }

    def to_prompt_format(self) -> str:
        """Convert to human-readable format for prompt injection (Ollama)"""
        params_desc = []
        properties = self.parameters.get("properties", {})
        required = self.parameters.get("required", [])

        for param_name, param_spec in properties.items():
            param_type = param_spec.get("type", "string")
            param_desc = param_spec.get("description", "")
            enum_values = param_spec.get("enum", [])

            param_str = f"  - {param_name} ({param_type}"
            if param_name in required:
                param_str += ", Pflichtfeld"
            param_str += f"): {param_desc}"
            if enum_values:
                param_str += f" [Werte: {', '.join(enum_values)}]"
            params_desc.append(param_str)

        params_section = "\n".join(params_desc) if params_desc else "  (keine Parameter)"

        return f"""Tool: {self.name}
Beschreibung: {self.description}
Parameter:
{params_section}
"""


class ToolDefinition(BaseModel):
    """
    Full tool registration: the LLM-facing schema plus what the gateway and
    the orchestrator need to run the tool and present its result.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    # Named tool_schema to avoid shadowing BaseModel.schema
    tool_schema: ToolSchema
    category: ToolCategory
    input_model: Type[BaseModel]
    # RenderTemplate used when the model answers with tool calls only
    render_template: Any
    failure_message: str = Field(
        default="Die Aktion konnte nicht ausgeführt werden.",
        description="Generic German message for store failures"
    )
    max_execution_time_ms: int = Field(
        default=30000,
        description="Maximum execution time in milliseconds"
    )

    @property
    def name(self) -> str:
        return self.tool_schema.name


class ToolCall(BaseModel):
    """Represents a single tool call from the LLM"""
    id: str = Field(..., description="Unique identifier for this tool call")
    name: str = Field(..., description="Name of the tool to call")
    arguments: Any = Field(
        default_factory=dict,
        description="Arguments to pass to the tool (validated by the executor)"
    )


class ToolResult(BaseModel):
    """Result from tool execution; `envelope` is what the tool returned"""
    tool_call_id: str
    tool_name: str
    envelope: Dict[str, Any]
    execution_time_ms: int = 0

    @property
    def success(self) -> bool:
        return bool(self.envelope.get("success"))

    @property
    def error(self) -> Optional[str]:
        return self.envelope.get("error")

    @property
    def error_code(self) -> Optional[str]:
        return self.envelope.get("errorCode")

    def to_message_content(self) -> str:
        """Convert to string for LLM message"""
        return json.dumps(self.envelope, ensure_ascii=False, default=str)


_SCHEMA_KEYWORDS = ("type", "format", "enum", "minimum", "maxLength", "minLength", "default")


def _resolve(prop: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    if "$ref" in prop:
        siblings = {k: v for k, v in prop.items() if k != "$ref"}
        return {**defs[prop["$ref"].rsplit("/", 1)[-1]], **siblings}
    for combinator in ("anyOf", "allOf"):
        if combinator in prop:
            # Optional[X] shows up as anyOf [X, null]
            variant = next(v for v in prop[combinator] if v.get("type") != "null")
            siblings = {k: v for k, v in prop.items() if k != combinator}
            return {**_resolve(variant, defs), **siblings}
    return prop


def parameters_from_model(
    model: Type[BaseModel],
    descriptions: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Build the LLM-facing JSON schema of a tool from its argument model.

    Property names, types, bounds, enums and required fields all come from the
    model; `descriptions` adds the German help text per camelCase property.
    """
    descriptions = descriptions or {}
    schema = model.model_json_schema(by_alias=True)
    defs = schema.get("$defs", {})

    properties = {}
    for name, prop in schema.get("properties", {}).items():
        resolved = _resolve(prop, defs)
        entry = {key: resolved[key] for key in _SCHEMA_KEYWORDS if resolved.get(key) is not None}
        if name in descriptions:
            entry["description"] = descriptions[name]
        properties[name] = entry

    return {
        "type": "object",
        "properties": properties,
        "required": list(schema.get("required", [])),
    }


def list_field_names(model: Type[BaseModel]) -> List[str]:
    """Accepted argument keys of an input model (aliases and field names)."""
    names = []
    for field_name, field in model.model_fields.items():
        names.append(field_name)
        if field.alias:
            names.append(field.alias)
    return names
