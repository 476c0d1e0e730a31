from typing import List, Optional, Dict, Any, Tuple
import asyncio
import logging

from openai import AsyncOpenAI
from ollama import AsyncClient

from handyai.core.config import Settings

logger = logging.getLogger("handyai.llm")


class LLMServiceError(Exception):
    """Raised when the language model provider cannot produce a reply."""

    def __init__(self, provider: str, detail: str):
        super().__init__(f"LLM API error ({provider}): {detail}")
        self.provider = provider
        self.detail = detail


class LLMService:
    """
    Thin client over the configured LLM provider.

    One instance is created at startup and stored on ``app.state.llm_service``.
    ``complete`` returns ``(content, usage, tool_calls)``; tool calls are only
    populated for providers with native function calling (OpenAI-compatible).
    Ollama replies are returned as text and parsed by the agent.
    """

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30,
        temperature: float = 0.3,
    ):
        self.provider = provider.lower()
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

        if self.provider == "openai":
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        elif self.provider == "ollama":
            self._client = AsyncClient(host=base_url)
        else:
            raise ValueError(f"Unsupported LLM provider: {provider}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMService":
        provider = settings.DEFAULT_LLM_PROVIDER.lower()
        if provider == "ollama":
            return cls(
                provider,
                settings.OLLAMA_MODEL,
                base_url=settings.OLLAMA_BASE_URL,
                timeout=settings.LLM_REQUEST_TIMEOUT,
                temperature=settings.LLM_TEMPERATURE,
            )
        return cls(
            provider,
            settings.OPENAI_MODEL,
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.LLM_REQUEST_TIMEOUT,
            temperature=settings.LLM_TEMPERATURE,
        )

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> Tuple[str, Dict[str, int], Optional[List[Dict[str, Any]]]]:
        """
        Get one reply from the model.

        Args:
            messages: Chat messages including the system prompt
            tools: Tool definitions in OpenAI format (ignored for Ollama)

        Returns:
            Tuple of (content, usage, tool_calls)
            - content: Text response (may be empty if tool_calls present)
            - usage: prompt_tokens, completion_tokens, total_tokens
            - tool_calls: OpenAI-style tool call dicts or None
        """
        try:
            if self.provider == "openai":
                return await self._call_openai(messages, tools)
            content, usage = await self._call_ollama(messages)
            return content, usage, None

        except asyncio.TimeoutError:
            raise LLMServiceError(self.provider, f"Request timed out after {self.timeout}s")
        except LLMServiceError:
            raise
        except Exception as e:
            error_type = type(e).__name__
            raise LLMServiceError(self.provider, f"[{error_type}] {str(e)}") from e

    async def _call_openai(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]]
    ) -> Tuple[str, Dict[str, int], Optional[List[Dict[str, Any]]]]:
        """Call an OpenAI-compatible API with optional function calling support"""
        request_kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            request_kwargs["tools"] = tools
            request_kwargs["tool_choice"] = "auto"

        response = await self._client.chat.completions.create(**request_kwargs)

        message = response.choices[0].message
        content = message.content or ""
        usage = response.usage

        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments
                    }
                }
                for tc in message.tool_calls
            ]

        return content, {
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "total_tokens": usage.total_tokens if usage else 0,
        }, tool_calls

    async def _call_ollama(self, messages: List[Dict[str, Any]]) -> Tuple[str, Dict[str, int]]:
        """Call local Ollama API"""
        # Wrap Ollama call in timeout to prevent indefinite hanging
        response = await asyncio.wait_for(
            self._client.chat(
                model=self.model,
                messages=messages,
                options={"temperature": self.temperature},
            ),
            timeout=self.timeout
        )

        # Handle both dict (older ollama versions) and ChatResponse object (newer versions)
        if isinstance(response, dict):
            message = response.get("message", {})
            content = message.get("content", "") if isinstance(message, dict) else ""
            eval_count = response.get("eval_count", 0) or 0
            prompt_eval_count = response.get("prompt_eval_count", 0) or 0
        else:
            message = getattr(response, "message", None)
            content = (getattr(message, "content", "") or "") if message else ""
            eval_count = getattr(response, "eval_count", 0) or 0
            prompt_eval_count = getattr(response, "prompt_eval_count", 0) or 0

        return content, {
            "prompt_tokens": prompt_eval_count,
            "completion_tokens": eval_count,
            "total_tokens": prompt_eval_count + eval_count,
        }

    async def aclose(self) -> None:
        if self.provider == "openai":
            await self._client.close()
        logger.info(f"LLM client closed ({self.provider})")
