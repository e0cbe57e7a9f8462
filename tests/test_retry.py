"""Tests for retry logic with exponential backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

import video_codegen_mcp.config as cfg_mod
from video_codegen_mcp.retry import _is_retryable, with_retry


class TestIsRetryable:
    """Tests for _is_retryable pattern matching."""

    @pytest.mark.parametrize("msg", [
        "429 Too Many Requests",
        "Quota exceeded for this key",
        "RESOURCE_EXHAUSTED: rate limit",
        "Request timeout after 30s",
        "OpenRouter API error (502): bad gateway",
        "503 Service Temporarily Unavailable",
        "service unavailable, please retry",
    ])
    def test_is_retryable_patterns(self, msg: str):
        """Each known transient pattern should be recognized as retryable."""
        assert _is_retryable(Exception(msg)) is True

    @pytest.mark.parametrize("msg", [
        "Invalid input: missing required field",
        "OpenRouter API error (401): bad key",
        "400 Bad Request",
        "No content in OpenRouter response",
    ])
    def test_is_retryable_false_for_unknown(self, msg: str):
        """Non-transient errors should not be retryable."""
        assert _is_retryable(Exception(msg)) is False

    def test_httpx_transport_errors_are_retryable(self):
        assert _is_retryable(httpx.ConnectError("refused")) is True
        assert _is_retryable(httpx.ReadTimeout("slow")) is True


class TestWithRetry:
    """Tests for with_retry exponential backoff behavior."""

    @patch("video_codegen_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_with_retry_success_first_attempt(self, mock_sleep):
        """No retry needed when the first attempt succeeds."""
        factory = AsyncMock(return_value="ok")

        result = await with_retry(factory)

        assert result == "ok"
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("video_codegen_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_with_retry_exhausts_max_attempts(self, mock_sleep):
        """Should raise after all attempts fail with a retryable error."""
        factory = AsyncMock(side_effect=Exception("429 rate limit"))

        with pytest.raises(Exception, match="429 rate limit"):
            await with_retry(factory)

        assert factory.await_count == 3
        assert mock_sleep.await_count == 2

    @patch("video_codegen_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_with_retry_non_retryable_raises_immediately(self, mock_sleep):
        factory = AsyncMock(side_effect=ValueError("invalid input"))

        with pytest.raises(ValueError, match="invalid input"):
            await with_retry(factory)

        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("video_codegen_mcp.retry.random.random", return_value=0.0)
    @patch("video_codegen_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_retry_respects_config_delays(self, mock_sleep, _mock_random, monkeypatch):
        """Custom base_delay and max_delay should be honored."""
        monkeypatch.setenv("CODEGEN_RETRY_BASE_DELAY", "0.5")
        monkeypatch.setenv("CODEGEN_RETRY_MAX_DELAY", "1.5")
        monkeypatch.setenv("CODEGEN_RETRY_MAX_ATTEMPTS", "4")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=[Exception("503")] * 3 + ["ok"])

        result = await with_retry(factory)

        assert result == "ok"
        delays = [call.args[0] for call in mock_sleep.await_args_list]
        # 0.5, 1.0, then 2.0 capped at 1.5
        assert delays == [0.5, 1.0, 1.5]

    @patch("video_codegen_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_retry_respects_config_max_attempts(self, mock_sleep, monkeypatch):
        """Setting max_attempts=1 means no retry at all."""
        monkeypatch.setenv("CODEGEN_RETRY_MAX_ATTEMPTS", "1")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=Exception("429 rate limit"))

        with pytest.raises(Exception, match="429 rate limit"):
            await with_retry(factory)

        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()
