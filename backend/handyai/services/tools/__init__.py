"""
Tool Calling System for the HandyAI assistant

This package exposes the CRM operations as named tools that a language model
(or any other caller) can invoke.

Main components:
- schema.py: Pydantic models for tool definitions (OpenAI format) and the result envelope
- registry.py: Catalog of tools and their handlers
- crm_tools.py: The CRM tool definitions and `build_crm_registry`
- executor.py: Safe tool execution with validation & limits
- templates.py: Render templates for deterministic chat summaries
- agent.py: Main agent loop orchestrating tool calls
- provider_adapter.py: Provider capabilities (native vs simulated)
"""

from handyai.services.tools.schema import ToolSchema, ToolDefinition, ToolResult
from handyai.services.tools.registry import ToolRegistry
from handyai.services.tools.crm_tools import build_crm_registry
from handyai.services.tools.executor import ToolExecutor
from handyai.services.tools.agent import ToolCallingAgent
from handyai.services.tools.provider_adapter import get_provider_capabilities, ProviderCapabilities

__all__ = [
    "ToolSchema",
    "ToolDefinition",
    "ToolResult",
    "ToolRegistry",
    "build_crm_registry",
    "ToolExecutor",
    "ToolCallingAgent",
    "get_provider_capabilities",
    "ProviderCapabilities",
]
