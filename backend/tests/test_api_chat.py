"""
Tests for handyai/api/v1/chat.py - the assistant endpoint.
"""
import json
from unittest.mock import AsyncMock

import pytest

from handyai.services.llm.llm_service import LLMServiceError
from handyai.services.tools.agent import LLM_ERROR_MESSAGE

URL = "/api/v1/chat"
USAGE = {"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20}


class TestChatEndpoint:

    @pytest.mark.asyncio
    async def test_plain_reply(self, client, mock_llm_service):
        mock_llm_service.complete = AsyncMock(return_value=("Hallo! Was kann ich tun?", USAGE, None))

        response = await client.post(URL, json={"messages": [{"role": "user", "content": "Hallo"}]})

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "Hallo! Was kann ich tun?"
        assert body["toolResults"] == []
        assert body["usage"] == {"promptTokens": 12, "completionTokens": 8, "totalTokens": 20}

    @pytest.mark.asyncio
    async def test_tool_results_are_returned(self, client, mock_llm_service):
        """Should report every tool call with its arguments and envelope."""
        call = {
            "id": "call_1",
            "type": "function",
            "function": {
                "name": "create_customer",
                "arguments": json.dumps({"firstName": "Max", "lastName": "Mustermann"}),
            },
        }
        mock_llm_service.complete = AsyncMock(side_effect=[
            ("", USAGE, [call]),
            ("", USAGE, None),
        ])

        response = await client.post(URL, json={"messages": [{"role": "user", "content": "Neuer Kunde"}]})

        body = response.json()
        assert body["toolResults"][0]["toolName"] == "create_customer"
        assert body["toolResults"][0]["result"]["success"] is True
        assert body["content"].startswith('✅ **Interessent "Max Mustermann" wurde erfolgreich erstellt.**')

        customers = await client.get("/api/v1/customers")
        assert len(customers.json()) == 1

    @pytest.mark.asyncio
    async def test_malformed_simulated_tool_call_is_answered(self, client, mock_llm_service):
        """A tool call with a non-string name should not turn into a server error."""
        reply = '{"tool_calls": [{"name": 42}]}'
        mock_llm_service.provider = "ollama"
        mock_llm_service.complete = AsyncMock(return_value=(reply, USAGE, None))

        response = await client.post(URL, json={"messages": [{"role": "user", "content": "Kunden?"}]})

        assert response.status_code == 200
        assert response.json()["toolResults"] == []

    @pytest.mark.asyncio
    async def test_llm_failure_returns_502(self, client, mock_llm_service):
        mock_llm_service.complete = AsyncMock(side_effect=LLMServiceError("openai", "connection refused"))

        response = await client.post(URL, json={"messages": [{"role": "user", "content": "Hallo"}]})

        assert response.status_code == 502
        assert response.json() == {"error": LLM_ERROR_MESSAGE, "details": "connection refused"}

    @pytest.mark.asyncio
    async def test_empty_conversation_is_rejected(self, client):
        response = await client.post(URL, json={"messages": []})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_role_is_rejected(self, client):
        response = await client.post(URL, json={"messages": [{"role": "system", "content": "x"}]})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_streamed_reply(self, client, mock_llm_service):
        mock_llm_service.complete = AsyncMock(return_value=("Guten Tag, wie kann ich helfen?", USAGE, None))

        response = await client.post(
            URL, json={"messages": [{"role": "user", "content": "Hallo"}], "stream": True}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Guten Tag, wie kann ich helfen?"

    @pytest.mark.asyncio
    async def test_streamed_llm_failure(self, client, mock_llm_service):
        mock_llm_service.complete = AsyncMock(side_effect=LLMServiceError("openai", "timeout"))

        response = await client.post(
            URL, json={"messages": [{"role": "user", "content": "Hallo"}], "stream": True}
        )

        assert response.text == LLM_ERROR_MESSAGE
