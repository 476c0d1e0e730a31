"""
Tool Calling Agent - Main orchestration loop for LLM tool calling

This module implements the agent loop that:
1. Sends the conversation to the LLM with tool definitions
2. Parses tool calls from the response
3. Executes tools through the ToolExecutor and feeds results back
4. Repeats until the LLM provides a final answer

Supports both native function calling (OpenAI-compatible) and simulated tool
calling (Ollama) via prompt injection. When the model calls tools but writes
no text, the reply is built from the tools' render templates.
"""

from typing import Dict, Any, List, Optional, AsyncGenerator
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
import uuid

from handyai.core.config import settings
from handyai.services.llm.llm_service import LLMService, LLMServiceError
from handyai.services.tools.executor import ToolExecutor
from handyai.services.tools.prompts import SYSTEM_PROMPT
from handyai.services.tools.provider_adapter import get_provider_capabilities
from handyai.services.tools.registry import ToolRegistry
from handyai.services.tools.schema import ToolCall, ToolResult
from handyai.services.tools.templates import render_failure

logger = logging.getLogger("handyai.tools.agent")

LLM_ERROR_MESSAGE = "Der KI-Assistent ist gerade nicht erreichbar. Bitte versuche es in Kürze noch einmal."
EMPTY_REPLY_MESSAGE = "Ich konnte leider keine Antwort erzeugen. Bitte formuliere deine Anfrage noch einmal."


class AgentState(str, Enum):
    """States the agent can be in during execution"""
    THINKING = "thinking"
    CALLING_TOOL = "calling_tool"
    RESPONDING = "responding"


@dataclass
class AgentContext:
    """Context maintained across the agent loop"""
    messages: List[Dict[str, Any]] = field(default_factory=list)
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    iteration: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ToolCallingAgent:
    """
    Agent that orchestrates tool calling with LLMs.

    One instance handles one chat request. The client sends the whole
    conversation every time; nothing is kept between requests.

    Usage:
        agent = ToolCallingAgent(llm_service, ToolExecutor(registry, store), registry)
        result = await agent.run([{"role": "user", "content": "Zeig mir alle Kunden"}])
        print(result["content"])
    """

    MAX_TOOL_CALLS_PER_ITERATION = 3

    def __init__(
        self,
        llm_service: LLMService,
        executor: ToolExecutor,
        registry: ToolRegistry,
        max_rounds: Optional[int] = None,
        max_history: Optional[int] = None
    ):
        self.llm_service = llm_service
        self.executor = executor
        self.registry = registry
        self.max_rounds = max_rounds or settings.CHAT_MAX_TOOL_ROUNDS
        self.max_history = max_history or settings.CHATBOT_MAX_HISTORY

        self.context = AgentContext()
        self.capabilities = get_provider_capabilities(llm_service.provider)

    @property
    def uses_native_tools(self) -> bool:
        """Check if this provider supports native function calling"""
        return self.capabilities.native_function_calling

    async def run(self, conversation: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Run the agent loop until the model answers, a tool fails or the round limit is hit.

        Args:
            conversation: Client messages ({role, content}), oldest first

        Returns:
            Dict with content, toolResults and usage

        Raises:
            LLMServiceError: the provider could not produce a reply
        """
        self._initialize_messages(conversation)

        while self.context.iteration < self.max_rounds:
            self.context.iteration += 1
            logger.info(f"Agent iteration {self.context.iteration}")

            response = await self._get_llm_response()
            tool_calls = response.get("tool_calls") or []
            content = (response.get("content") or "").strip()

            if not tool_calls:
                if not content:
                    content = self._render_summary()
                return self._build_result(content)

            logger.info(f"LLM requested {len(tool_calls)} tool call(s)")
            tool_calls = tool_calls[:self.MAX_TOOL_CALLS_PER_ITERATION]
            results = await self._execute_tools(tool_calls)

            failed = self._first_failure(results)
            if failed is not None:
                # No retry: the failure goes to the user, not back to the model
                logger.info(f"Stopping agent loop after failed tool {failed.tool_name}")
                return self._build_result(self._with_failure(content, failed))

            self._append_tool_results(tool_calls[:len(results)], results, content)

        logger.warning("Agent reached max tool rounds")
        return self._build_result(self._render_summary())

    async def run_streaming(
        self,
        conversation: List[Dict[str, Any]]
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Streaming version of run().

        Yields events like:
            {"type": "state", "state": "thinking"}
            {"type": "tool_call", "tool": "get_customers", "arguments": {...}}
            {"type": "tool_result", "tool": "get_customers", "success": true, "message": "..."}
            {"type": "token", "content": "word "}
            {"type": "done", "content": "...", "toolResults": [...], "usage": {...}}
            {"type": "error", "error": "..."}
        """
        self._initialize_messages(conversation)
        final_content: Optional[str] = None

        while self.context.iteration < self.max_rounds:
            self.context.iteration += 1
            yield {"type": "state", "state": AgentState.THINKING.value}

            try:
                response = await self._get_llm_response()
            except LLMServiceError as e:
                logger.error(f"LLM call failed: {e}")
                yield {"type": "error", "error": LLM_ERROR_MESSAGE, "details": e.detail}
                return

            tool_calls = response.get("tool_calls") or []
            content = (response.get("content") or "").strip()

            if not tool_calls:
                final_content = content or self._render_summary()
                break

            tool_calls = tool_calls[:self.MAX_TOOL_CALLS_PER_ITERATION]
            for tc in tool_calls:
                yield {"type": "tool_call", "tool": tc.name, "arguments": tc.arguments}

            yield {"type": "state", "state": AgentState.CALLING_TOOL.value}
            results = await self._execute_tools(tool_calls)

            for result in results:
                yield {
                    "type": "tool_result",
                    "tool": result.tool_name,
                    "success": result.success,
                    "message": result.envelope.get("message"),
                    "execution_time_ms": result.execution_time_ms
                }

            failed = self._first_failure(results)
            if failed is not None:
                final_content = self._with_failure(content, failed)
                break

            self._append_tool_results(tool_calls[:len(results)], results, content)

        if final_content is None:
            final_content = self._render_summary()

        yield {"type": "state", "state": AgentState.RESPONDING.value}
        words = final_content.split(" ")
        for i, word in enumerate(words):
            separator = " " if i < len(words) - 1 else ""
            yield {"type": "token", "content": word + separator}

        yield {"type": "done", **self._build_result(final_content)}

    def _initialize_messages(self, conversation: List[Dict[str, Any]]) -> None:
        """Initialize the message list for the agent loop"""
        self.context = AgentContext()

        system_prompt = SYSTEM_PROMPT
        # For non-native providers, inject tool descriptions
        if not self.uses_native_tools:
            system_prompt = f"{system_prompt}\n\n{self.registry.get_tools_prompt()}"

        self.context.messages.append({"role": "system", "content": system_prompt})

        for msg in conversation[-self.max_history:]:
            self.context.messages.append({
                "role": msg.get("role", "user"),
                "content": msg.get("content", "")
            })

    async def _get_llm_response(self) -> Dict[str, Any]:
        """
        Get response from LLM, handling both native and simulated tool calling.

        Returns:
            Dict with 'content' and optional 'tool_calls'
        """
        tools_spec = self.registry.get_openai_tools_spec() if self.uses_native_tools else None
        content, usage, tool_calls_raw = await self.llm_service.complete(
            self.context.messages, tools=tools_spec
        )

        self.context.prompt_tokens += usage.get("prompt_tokens", 0) or 0
        self.context.completion_tokens += usage.get("completion_tokens", 0) or 0
        self.context.total_tokens += usage.get("total_tokens", 0) or 0

        if self.uses_native_tools:
            if tool_calls_raw:
                return {"tool_calls": self._parse_native_tool_calls(tool_calls_raw), "content": content}
            return {"content": content}

        tool_calls = self._parse_tool_calls_from_text(content)
        if tool_calls:
            # The JSON itself is not meant for the user
            return {"tool_calls": tool_calls, "content": None}
        return {"content": content}

    def _parse_native_tool_calls(self, tool_calls_raw: List[Dict[str, Any]]) -> List[ToolCall]:
        calls = []
        for i, tc in enumerate(tool_calls_raw):
            function = tc.get("function")
            if not isinstance(function, dict):
                function = {}
            name = function.get("name")
            arguments = function.get("arguments", "{}")
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments) if arguments.strip() else {}
                except json.JSONDecodeError:
                    logger.warning(f"Tool call {name} has malformed arguments")
            calls.append(ToolCall(
                id=tc.get("id") or f"call_{i}",
                # A missing or non-string name ends up as an unknown tool
                name=name if isinstance(name, str) else "",
                arguments=arguments,
            ))
        return calls

    def _parse_tool_calls_from_text(self, text: Optional[str]) -> Optional[List[ToolCall]]:
        """
        Parse tool calls from LLM text response.

        Looks for a JSON object in the format
        {"tool_calls": [{"name": "...", "arguments": {...}}]}
        anywhere in the text (Markdown code fences included).
        """
        if not text or "tool_calls" not in text:
            return None

        decoder = json.JSONDecoder()
        index = text.find("{")
        while index != -1:
            try:
                data, _ = decoder.raw_decode(text, index)
            except json.JSONDecodeError:
                index = text.find("{", index + 1)
                continue

            if isinstance(data, dict) and isinstance(data.get("tool_calls"), list):
                calls = [
                    ToolCall(
                        id=f"sim_{uuid.uuid4().hex[:8]}",
                        name=tc["name"],
                        arguments=tc.get("arguments") or {},
                    )
                    for tc in data["tool_calls"]
                    if isinstance(tc, dict) and isinstance(tc.get("name"), str) and tc["name"]
                ]
                return calls or None
            index = text.find("{", index + 1)

        return None

    async def _execute_tools(self, tool_calls: List[ToolCall]) -> List[ToolResult]:
        """Execute tool calls in order; stops after the first failure"""
        results = []
        for tc in tool_calls:
            result = await self.executor.execute(tc.name, tc.arguments, tool_call_id=tc.id)
            self.context.tool_calls.append(tc)
            self.context.tool_results.append(result)
            results.append(result)
            if not result.success:
                break
        return results

    @staticmethod
    def _first_failure(results: List[ToolResult]) -> Optional[ToolResult]:
        return next((r for r in results if not r.success), None)

    @staticmethod
    def _with_failure(content: str, failed: ToolResult) -> str:
        failure = render_failure(failed.envelope)
        return f"{content}\n\n{failure}" if content else failure

    def _append_tool_results(
        self,
        tool_calls: List[ToolCall],
        results: List[ToolResult],
        content: str
    ) -> None:
        """Add tool results to message history for next iteration"""
        if self.uses_native_tools:
            # OpenAI format: assistant message with tool_calls, then tool messages
            self.context.messages.append({
                "role": "assistant",
                "content": content or None,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments, ensure_ascii=False)
                        }
                    }
                    for tc in tool_calls
                ]
            })

            for tc, result in zip(tool_calls, results):
                self.context.messages.append({
                    "role": "tool",
                    "tool_call_id": tc.id,
                    "content": result.to_message_content()
                })
        else:
            # Simulated format: results go back as assistant context
            results_text = "\n\n".join(
                f"Ergebnis von '{r.tool_name}':\n{r.to_message_content()}"
                for r in results
            )
            self.context.messages.append({
                "role": "assistant",
                "content": f"Ich habe folgende Tools aufgerufen:\n\n{results_text}"
            })
            self.context.messages.append({
                "role": "user",
                "content": "Fasse die Ergebnisse jetzt für mich zusammen (ohne JSON)."
            })

    def _render_summary(self) -> str:
        """Deterministic reply built from the render templates of the tools that ran"""
        parts = []
        for result in self.context.tool_results:
            registered = self.registry.get_tool(result.tool_name)
            if registered is None:
                parts.append(render_failure(result.envelope))
                continue
            parts.append(registered.definition.render_template.render(result.envelope))

        if not parts:
            return EMPTY_REPLY_MESSAGE
        return "\n\n".join(parts)

    def _get_tool_history(self) -> List[Dict[str, Any]]:
        """Get the history of tool calls and results"""
        return [
            {
                "toolCallId": tc.id,
                "toolName": tc.name,
                "args": tc.arguments,
                "result": tr.envelope,
            }
            for tc, tr in zip(self.context.tool_calls, self.context.tool_results)
        ]

    def _build_result(self, content: str) -> Dict[str, Any]:
        return {
            "content": content,
            "toolResults": self._get_tool_history(),
            "usage": {
                "promptTokens": self.context.prompt_tokens,
                "completionTokens": self.context.completion_tokens,
                "totalTokens": self.context.total_tokens,
            },
        }
