"""
Tool Executor - Safe execution of tools with validation and limits

This module is the single entry point through which tools run, whatever the
caller (chat orchestrator, JSON-RPC endpoint, tests):
- Argument validation against the tool's input model
- Execution time limits
- Mapping of every failure to a failure envelope

`execute` never raises; the caller always gets a ToolResult.
"""

from typing import Dict, Any, List, Optional
import asyncio
import time
import logging
import uuid

from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from handyai.schemas.tools import FIELD_LABELS
from handyai.services.crm.errors import (
    CRMError,
    EntityNotFoundError,
    InvalidStatusTransitionError,
)
from handyai.services.crm.store import CRMStore
from handyai.services.tools.registry import ToolRegistry
from handyai.services.tools.schema import (
    ToolErrorCode,
    ToolResult,
    failure_envelope,
    list_field_names,
)

logger = logging.getLogger("handyai.tools.executor")


def _field_label(loc: tuple) -> str:
    if not loc:
        return "Eingabe"
    key = str(loc[0])
    return FIELD_LABELS.get(key) or FIELD_LABELS.get(to_camel(key)) or key


def validation_message(errors: List[Dict[str, Any]]) -> str:
    """German summary of pydantic errors, e.g. 'Bitte Eingaben prüfen: Vorname fehlt.'"""
    parts: List[str] = []
    for err in errors:
        label = _field_label(err.get("loc", ()))
        verdict = "fehlt" if err.get("type") == "missing" else "ungültig"
        part = f"{label} {verdict}"
        if part not in parts:
            parts.append(part)
    return "Bitte Eingaben prüfen: " + ", ".join(parts) + "."


def validation_detail(errors: List[Dict[str, Any]]) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or 'arguments'}: {err.get('msg')}"
        for err in errors
    )


def _error_code(error: CRMError) -> ToolErrorCode:
    if isinstance(error, EntityNotFoundError):
        return ToolErrorCode.NOT_FOUND
    if isinstance(error, InvalidStatusTransitionError):
        return ToolErrorCode.INVALID_TRANSITION
    return ToolErrorCode.CONFLICT


class ToolExecutor:
    """
    Safe tool execution with validation and limits.

    This class wraps tool execution to ensure:
    1. Arguments are validated before the handler runs
    2. Execution time is limited
    3. Errors are caught and reported as failure envelopes
    """

    def __init__(self, registry: ToolRegistry, store: CRMStore):
        """
        Args:
            registry: Catalog the tool names are resolved against
            store: Data store adapter the handlers operate on
        """
        self.registry = registry
        self.store = store

    async def execute(
        self,
        tool_name: str,
        arguments: Any,
        tool_call_id: Optional[str] = None,
        timeout_ms: Optional[int] = None
    ) -> ToolResult:
        """
        Execute a tool with the given arguments.

        Args:
            tool_name: Name of the tool to execute
            arguments: Raw arguments as produced by the caller (expected to be a dict)
            tool_call_id: Identifier echoed back in the result
            timeout_ms: Optional timeout override in milliseconds

        Returns:
            ToolResult whose envelope describes success or failure
        """
        start_time = time.time()
        call_id = tool_call_id or f"call_{uuid.uuid4().hex[:12]}"

        def result(envelope: Dict[str, Any]) -> ToolResult:
            return ToolResult(
                tool_call_id=call_id,
                tool_name=tool_name,
                envelope=envelope,
                execution_time_ms=int((time.time() - start_time) * 1000),
            )

        registered_tool = self.registry.get_tool(tool_name)
        if not registered_tool:
            logger.warning(f"Unknown tool requested: {tool_name}")
            return result(failure_envelope(
                f"Unbekanntes Tool: {tool_name}",
                f"Unknown tool: {tool_name}",
                ToolErrorCode.UNKNOWN_TOOL,
            ))

        definition = registered_tool.definition
        handler = registered_tool.handler

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return result(failure_envelope(
                "Bitte Eingaben prüfen: Die Argumente müssen ein Objekt sein.",
                f"Arguments must be an object, got {type(arguments).__name__}",
                ToolErrorCode.VALIDATION_ERROR,
            ))

        known = set(list_field_names(definition.input_model))
        for key in arguments:
            if key not in known:
                # Ignored, but logged to spot prompt drift
                logger.warning(f"Unknown parameter {key} for tool {tool_name}")

        try:
            params = definition.input_model.model_validate(arguments)
        except ValidationError as e:
            errors = e.errors()
            logger.info(f"Tool {tool_name} rejected invalid arguments: {validation_detail(errors)}")
            return result(failure_envelope(
                validation_message(errors),
                validation_detail(errors),
                ToolErrorCode.VALIDATION_ERROR,
            ))

        timeout = timeout_ms or definition.max_execution_time_ms
        try:
            envelope = await asyncio.wait_for(handler(self.store, params), timeout=timeout / 1000)

        except CRMError as e:
            logger.info(f"Tool {tool_name} failed: {e.detail}")
            return result(failure_envelope(e.user_message, e.detail, _error_code(e)))

        except asyncio.TimeoutError:
            logger.error(f"Tool {tool_name} timed out after {timeout}ms")
            await self._rollback()
            return result(failure_envelope(
                definition.failure_message,
                f"Tool execution timed out after {timeout}ms",
                ToolErrorCode.STORE_ERROR,
            ))

        except SQLAlchemyError as e:
            logger.exception(f"Tool {tool_name} failed in the data store: {e}")
            await self._rollback()
            return result(failure_envelope(definition.failure_message, str(e), ToolErrorCode.STORE_ERROR))

        except Exception as e:
            logger.exception(f"Tool {tool_name} failed: {e}")
            return result(failure_envelope(
                "Ein unerwarteter Fehler ist aufgetreten.",
                str(e),
                ToolErrorCode.INTERNAL_ERROR,
            ))

        tool_result = result(envelope)
        logger.info(f"Tool {tool_name} executed in {tool_result.execution_time_ms}ms")
        return tool_result

    async def _rollback(self) -> None:
        try:
            await self.store.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback after tool failure failed: {e}")
