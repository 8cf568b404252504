"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import AsyncIterator

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis

from helpdesk_automation.actions.executor import ActionExecutor
from helpdesk_automation.core.config import Settings
from helpdesk_automation.models.message import InboundMessage

from tests.fakes import FakeAIPort, RecordingHandler


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        high_priority_threshold=8,
        process_timeout_seconds=2.0,
        ai_timeout_seconds=0.5,
        action_timeout_seconds=0.5,
        analysis_cache_ttl_seconds=0,
    )


@pytest.fixture
def message() -> InboundMessage:
    return InboundMessage(
        message_id="msg_test_001",
        content="Hello, I need help with my invoice",
        sender="alice@example.com",
        subject="Invoice question",
        channel="email",
        timestamp=datetime(2026, 1, 12, 14, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def executor(handler: RecordingHandler, settings: Settings) -> ActionExecutor:
    return ActionExecutor([handler], timeout=settings.action_timeout_seconds)


@pytest.fixture
def ai_port() -> FakeAIPort:
    return FakeAIPort()


@pytest_asyncio.fixture
async def redis() -> AsyncIterator[FakeAsyncRedis]:
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()
