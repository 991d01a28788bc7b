"""Tests for the external tool connectivity checks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest
from pydantic import SecretStr

from flowdeck.config.settings import Settings
from flowdeck.diagnostics import check_anthropic, check_claude_flow
from flowdeck.execution.manager import ProcessManager

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _fake_client(monkeypatch: pytest.MonkeyPatch, create: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.messages.create = create
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(anthropic, "AsyncAnthropic", factory)
    return factory


def _settings(key: str) -> Settings:
    return Settings(anthropic_api_key=SecretStr(key))


class TestCheckAnthropic:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", "sk-test-placeholder"])
    async def test_unconfigured_key(self, key: str) -> None:
        result = await check_anthropic(_settings(key))
        assert result["success"] is False
        assert result["configured"] is False

    @pytest.mark.asyncio
    async def test_success(self, monkeypatch: pytest.MonkeyPatch) -> None:
        create = AsyncMock(return_value=MagicMock())
        factory = _fake_client(monkeypatch, create)

        result = await check_anthropic(_settings("sk-ant-real"))

        assert result == {
            "success": True,
            "message": "Anthropic API connection successful",
            "configured": True,
        }
        assert factory.call_args.kwargs["api_key"] == "sk-ant-real"
        assert create.call_args.kwargs["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_status_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        error = anthropic.AuthenticationError(
            "invalid x-api-key",
            response=httpx.Response(401, request=_REQUEST),
            body=None,
        )
        _fake_client(monkeypatch, AsyncMock(side_effect=error))

        result = await check_anthropic(_settings("sk-ant-bad"))

        assert result["success"] is False
        assert result["configured"] is True
        assert result["error"].startswith("API error: 401")

    @pytest.mark.asyncio
    async def test_connection_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _fake_client(
            monkeypatch, AsyncMock(side_effect=anthropic.APIConnectionError(request=_REQUEST))
        )
        result = await check_anthropic(_settings("sk-ant-real"))
        assert result["success"] is False
        assert result["error"].startswith("Connection error:")


class TestCheckClaudeFlow:
    @pytest.mark.asyncio
    async def test_installed(self, manager: ProcessManager) -> None:
        result = await check_claude_flow(manager, "echo v2.0.0-alpha")
        assert result == {"success": True, "version": "v2.0.0-alpha", "installed": True}

    @pytest.mark.asyncio
    async def test_not_installed(self, manager: ProcessManager) -> None:
        result = await check_claude_flow(manager, "echo 'npx: not found' >&2; exit 127")
        assert result["success"] is False
        assert result["installed"] is False
        assert "not found" in result["error"]
