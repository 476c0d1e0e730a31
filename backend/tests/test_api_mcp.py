"""
Tests for handyai/api/v1/mcp.py - JSON-RPC tool invocation endpoint.
"""
import json

import pytest

URL = "/api/v1/mcp"


def rpc(method, params=None, request_id=1):
    body = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    return body


class TestToolsCall:

    @pytest.mark.asyncio
    async def test_call_tool(self, client):
        """Should run the tool and return its envelope as text content."""
        response = await client.post(URL, json=rpc("tools/call", {
            "name": "create_customer",
            "arguments": {"firstName": "Max", "lastName": "Mustermann"},
        }))

        assert response.status_code == 200
        body = response.json()
        assert body["jsonrpc"] == "2.0"
        assert body["id"] == 1
        assert body["result"]["isError"] is False
        content = body["result"]["content"][0]
        assert content["type"] == "text"
        envelope = json.loads(content["text"])
        assert envelope["success"] is True
        assert envelope["customer"]["lastName"] == "Mustermann"

    @pytest.mark.asyncio
    async def test_tool_failure_is_a_result(self, client):
        """Should report business failures with isError instead of a JSON-RPC error."""
        response = await client.post(URL, json=rpc("tools/call", {
            "name": "create_customer",
            "arguments": {"firstName": "Max"},
        }))

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["isError"] is True
        assert json.loads(result["content"][0]["text"])["errorCode"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, client):
        response = await client.post(URL, json=rpc("tools/call", {"name": "send_email", "arguments": {}}))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_missing_tool_name(self, client):
        response = await client.post(URL, json=rpc("tools/call", {"arguments": {}}))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32600


class TestOtherMethods:

    @pytest.mark.asyncio
    async def test_tools_list(self, client):
        response = await client.post(URL, json=rpc("tools/list"))

        tools = response.json()["result"]["tools"]
        assert len(tools) == 12
        assert all("inputSchema" in t for t in tools)

    @pytest.mark.asyncio
    async def test_resources_list(self, client):
        response = await client.post(URL, json=rpc("resources/list"))

        uris = [r["uri"] for r in response.json()["result"]["resources"]]
        assert uris == ["crm://customers/all", "crm://offers/all", "crm://stats/overview"]

    @pytest.mark.asyncio
    async def test_read_customers_resource(self, client):
        await client.post(URL, json=rpc("tools/call", {
            "name": "create_customer",
            "arguments": {"firstName": "Erika", "lastName": "Schulz"},
        }))

        response = await client.post(URL, json=rpc("resources/read", {"uri": "crm://customers/all"}))

        content = response.json()["result"]["contents"][0]
        assert content["mimeType"] == "application/json"
        customers = json.loads(content["text"])
        assert customers[0]["firstName"] == "Erika"

    @pytest.mark.asyncio
    async def test_read_stats_resource(self, client):
        response = await client.post(URL, json=rpc("resources/read", {"uri": "crm://stats/overview"}))

        stats = json.loads(response.json()["result"]["contents"][0]["text"])
        assert stats["conversionRate"] == "0.00"

    @pytest.mark.asyncio
    async def test_unknown_resource(self, client):
        response = await client.post(URL, json=rpc("resources/read", {"uri": "crm://nothing"}))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_unknown_method(self, client):
        response = await client.post(URL, json=rpc("prompts/list", request_id="abc"))

        assert response.status_code == 400
        body = response.json()
        assert body["id"] == "abc"
        assert body["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_malformed_body(self, client):
        response = await client.post(URL, content=b"{not json", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_internal_error(self, client):
        """Should map unexpected failures to -32603."""
        from unittest.mock import patch

        with patch("handyai.api.v1.mcp._read_resource", side_effect=RuntimeError("boom")):
            response = await client.post(URL, json=rpc("resources/read", {"uri": "crm://stats/overview"}))

        assert response.status_code == 500
        assert response.json()["error"]["code"] == -32603
