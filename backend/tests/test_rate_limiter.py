"""
Tests for handyai/core/rate_limiter.py - Rate limiting functionality.
"""
import json

import pytest
from unittest.mock import MagicMock, patch


class TestGetRealClientIP:
    """Test real client IP extraction."""

    def test_extracts_from_x_forwarded_for(self):
        """Should extract first IP from X-Forwarded-For header."""
        from handyai.core.rate_limiter import get_real_client_ip

        mock_request = MagicMock()
        mock_request.headers = {"X-Forwarded-For": "203.0.113.1, 198.51.100.1, 192.0.2.1"}

        ip = get_real_client_ip(mock_request)

        assert ip == "203.0.113.1"

    def test_extracts_from_x_real_ip(self):
        """Should extract from X-Real-IP if X-Forwarded-For not present."""
        from handyai.core.rate_limiter import get_real_client_ip

        mock_request = MagicMock()
        mock_request.headers = {"X-Real-IP": "203.0.113.2"}

        ip = get_real_client_ip(mock_request)

        assert ip == "203.0.113.2"

    def test_falls_back_to_direct_ip(self):
        """Should fall back to direct connection IP."""
        from handyai.core.rate_limiter import get_real_client_ip

        mock_request = MagicMock()
        mock_request.headers = {}

        with patch('handyai.core.rate_limiter.get_remote_address', return_value="192.168.1.100"):
            ip = get_real_client_ip(mock_request)

        assert ip == "192.168.1.100"

    def test_strips_whitespace(self):
        """Should strip whitespace from extracted IP."""
        from handyai.core.rate_limiter import get_real_client_ip

        mock_request = MagicMock()
        mock_request.headers = {"X-Forwarded-For": "  203.0.113.1  , 198.51.100.1"}

        ip = get_real_client_ip(mock_request)

        assert ip == "203.0.113.1"


class TestStorageUri:
    """Test the limiter storage backend selection."""

    def test_uses_redis_when_configured(self):
        from handyai.core import rate_limiter

        with patch.object(rate_limiter.settings, "REDIS_URL", "redis://:secret@cache:6379/0"):
            assert rate_limiter._storage_uri() == "redis://:secret@cache:6379/0"

    def test_falls_back_to_memory(self):
        from handyai.core import rate_limiter

        with patch.object(rate_limiter.settings, "REDIS_URL", None):
            assert rate_limiter._storage_uri() == "memory://"


class TestRateLimitExceededHandler:
    """Test the 429 response."""

    def test_returns_429_with_retry_after(self):
        from handyai.core.rate_limiter import rate_limit_exceeded_handler

        mock_request = MagicMock()
        mock_request.headers = {"X-Forwarded-For": "203.0.113.9"}
        mock_request.method = "POST"
        mock_request.url.path = "/api/v1/chat"
        exc = MagicMock()
        exc.retry_after = 30

        response = rate_limit_exceeded_handler(mock_request, exc)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        body = json.loads(response.body)
        assert body["error"] == "Zu viele Anfragen"
        assert body["retry_after"] == 30


class TestLimiterConfiguration:

    def test_limiter_is_disabled_in_tests(self):
        """RATE_LIMIT_ENABLED=false should switch the limiter off."""
        from handyai.core.rate_limiter import limiter

        assert limiter.enabled is False

    @pytest.mark.asyncio
    async def test_chat_is_rate_limited_when_enabled(self, client, mock_llm_service):
        """Should answer 429 once the per-client chat limit (20/minute) is used up."""
        from unittest.mock import AsyncMock
        from handyai.core.rate_limiter import limiter

        mock_llm_service.complete = AsyncMock(return_value=("Ok", {}, None))
        body = {"messages": [{"role": "user", "content": "Hallo"}]}
        headers = {"X-Forwarded-For": "198.51.100.77"}

        limiter.reset()
        with patch.object(limiter, "enabled", True):
            statuses = [
                (await client.post("/api/v1/chat", json=body, headers=headers)).status_code
                for _ in range(21)
            ]
        limiter.reset()

        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429
