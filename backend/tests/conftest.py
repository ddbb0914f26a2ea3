"""Shared fixtures: a fake Anthropic SDK client and the bundled catalog."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from mapmygap.config import Settings
from mapmygap.services.ai_client import AIClient
from mapmygap.services.framework_catalog import get_framework_catalog


def make_message(text: str, stop_reason: str = "end_turn") -> SimpleNamespace:
    """Shape of an ``anthropic.types.Message`` as far as the client reads it."""
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        stop_reason=stop_reason,
    )


def make_sdk(*outcomes) -> MagicMock:
    """Mock SDK whose ``messages.create`` returns/raises ``outcomes`` in order.

    Strings become messages, exceptions are raised, and ``"sleep"`` blocks
    long enough to hit any test timeout.
    """

    queue = list(outcomes)

    async def _create(**kwargs):
        outcome = queue.pop(0)
        if outcome == "sleep":
            await asyncio.sleep(5)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return make_message(outcome)
        return outcome

    sdk = MagicMock()
    sdk.messages = MagicMock()
    sdk.messages.create = AsyncMock(side_effect=_create)
    return sdk


@pytest.fixture
def fake_ai():
    """Factory: ``fake_ai(*outcomes)`` -> AIClient backed by a mock SDK."""

    def _factory(*outcomes) -> AIClient:
        return AIClient(
            make_sdk(*outcomes), ["primary-model", "fallback-model"], provider="test"
        )

    return _factory


@pytest.fixture
def unconfigured_ai() -> AIClient:
    return AIClient()


@pytest.fixture
def catalog():
    return get_framework_catalog()


@pytest.fixture
def settings() -> Settings:
    """Settings with short AI timeouts and no external services."""
    return Settings(
        _env_file=None,
        anthropic_api_key=None,
        supabase_url=None,
        supabase_key=None,
        supabase_service_key=None,
        analysis_timeout_seconds=0.2,
        control_text_timeout_seconds=0.2,
    )
