"""
Tool Registry - Central catalog of the tools a caller may invoke by name

One registry is built at application startup (see `build_crm_registry`) and
shared by every transport: the chat orchestrator, the JSON-RPC endpoint and
the tests.
"""

from typing import Dict, Callable, Awaitable, Any, List, Optional
from dataclasses import dataclass
import logging

from handyai.services.tools.schema import ToolDefinition, ToolCategory

logger = logging.getLogger("handyai.tools.registry")

ToolHandler = Callable[..., Awaitable[Dict[str, Any]]]


@dataclass
class RegisteredTool:
    """A tool that has been registered with the registry"""
    definition: ToolDefinition
    handler: ToolHandler


class ToolRegistry:
    """
    Registry of tool definitions and their handlers.

    Usage:
        registry = ToolRegistry()
        registry.register_tool(definition, handler)

        registry.get_tool("create_customer")
        registry.get_openai_tools_spec()
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register_tool(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """
        Programmatic registration of a tool.

        Args:
            definition: The tool definition
            handler: Async function `handler(store, params) -> envelope`
        """
        name = definition.tool_schema.name
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = RegisteredTool(definition=definition, handler=handler)
        logger.debug(f"Registered tool: {name}")

    def get_tool(self, name: str) -> Optional[RegisteredTool]:
        """Get a registered tool by name"""
        return self._tools.get(name)

    def get_all_tools(self) -> List[RegisteredTool]:
        """Get all registered tools"""
        return list(self._tools.values())

    def get_tools_by_category(self, category: ToolCategory) -> List[RegisteredTool]:
        """Get all tools in a specific category"""
        return [
            tool for tool in self._tools.values()
            if tool.definition.category == category
        ]

    def get_openai_tools_spec(self) -> List[Dict[str, Any]]:
        """
        Get all tools in OpenAI function calling format.

        Returns a list suitable for passing to the OpenAI API's `tools` parameter.
        """
        return [
            tool.definition.tool_schema.to_openai_format()
            for tool in self._tools.values()
        ]

    def list_tools(self) -> List[Dict[str, Any]]:
        """Tool catalog in the `tools/list` format of the JSON-RPC endpoint"""
        return [
            tool.definition.tool_schema.to_mcp_format()
            for tool in self._tools.values()
        ]

    def get_tools_prompt(self) -> str:
        """
        Generate a tools description prompt for LLMs without native tool support.

        The text is appended to the system prompt for Ollama and similar providers;
        the agent parses the JSON tool calls back out of the reply.
        """
        tools_desc = [
            tool.definition.tool_schema.to_prompt_format()
            for tool in self._tools.values()
        ]

        return """Du hast Zugriff auf die folgenden CRM-Tools:

{}

Um ein Tool zu verwenden, antworte NUR mit einem JSON-Objekt in GENAU diesem Format:
{{"tool_calls": [{{"name": "tool_name", "arguments": {{"arg1": "wert1"}}}}]}}

WICHTIG:
- Gib das JSON nur aus, wenn du ein Tool aufrufen musst
- Du kannst mehrere Tools gleichzeitig aufrufen, indem du weitere Einträge hinzufügst
- Nach den Tool-Ergebnissen antwortest du normal auf Deutsch
- Wenn du ohne Tools antworten kannst, antworte normal (kein JSON)

Beispiel:
{{"tool_calls": [{{"name": "get_customers", "arguments": {{"search": "Müller"}}}}]}}
""".format("\n".join(tools_desc))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
