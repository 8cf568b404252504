"""Tests for inbound message decoding, deduplication and rule update propagation."""

import json

import pytest
from pydantic import ValidationError

from helpdesk_automation.actions.executor import ActionExecutor
from helpdesk_automation.core.config import Settings
from helpdesk_automation.engine.registry import EngineRegistry
from helpdesk_automation.messaging.consumer import parse_body
from helpdesk_automation.messaging.handler import MessageRouter
from helpdesk_automation.messaging.rule_updates import RuleUpdateListener
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.storage.auxiliary import IdempotencyStore

from tests.fakes import FakeAIPort, FakeRuleRepository, RecordingHandler, make_rule


def _registry(settings: Settings, repository: FakeRuleRepository) -> EngineRegistry:
    return EngineRegistry(repository, FakeAIPort(), ActionExecutor([RecordingHandler()]), settings)


def test_parse_body() -> None:
    body = json.dumps({
        "tenant_id": "tenant-a",
        "message_id": "msg_9",
        "content": "hello",
        "channel": "whatsapp",
        "metadata": {"priority": "high"},
    }).encode()

    tenant_id, message = parse_body(body)

    assert tenant_id == "tenant-a"
    assert message.message_id == "msg_9"
    assert message.priority == "high"


def test_parse_body_uses_delivery_id_when_message_id_missing() -> None:
    body = json.dumps({"tenant_id": "tenant-a", "content": "hello"}).encode()

    _, message = parse_body(body, fallback_message_id="amqp-1")

    assert message.message_id == "amqp-1"


@pytest.mark.parametrize(
    ("body", "error"),
    [
        (b"not json", ValueError),
        (b"[]", ValueError),
        (json.dumps({"content": "no tenant"}).encode(), ValueError),
        (json.dumps({"tenant_id": "t", "metadata": "oops"}).encode(), ValidationError),
    ],
)
def test_parse_body_rejects_malformed_payloads(body: bytes, error: type) -> None:
    with pytest.raises(error):
        parse_body(body)


@pytest.mark.asyncio
async def test_duplicate_deliveries_are_processed_once(settings: Settings, redis) -> None:
    repository = FakeRuleRepository([make_rule("a")])
    router = MessageRouter(_registry(settings, repository), IdempotencyStore(redis))
    message = InboundMessage(message_id="msg_dup", content="hello")

    first = await router.handle("tenant-a", message)
    second = await router.handle("tenant-a", message)
    other_tenant = await router.handle("tenant-b", message)

    assert first is not None and first.matched_rule_ids == ["a"]
    assert second is None
    assert other_tenant is not None


@pytest.mark.asyncio
async def test_rule_update_listener_applies_changes(settings: Settings, redis) -> None:
    repository = FakeRuleRepository([make_rule("a"), make_rule("b")])
    registry = _registry(settings, repository)
    engine = await registry.get_engine("tenant-a")
    listener = RuleUpdateListener(registry, redis)

    repository.add(make_rule("c"))
    await listener.apply(json.dumps({"action": "create", "tenant_id": "tenant-a", "rule_id": "c"}))
    await listener.apply(json.dumps({"action": "delete", "tenant_id": "tenant-a", "rule_id": "a"}))
    await listener.apply("garbage")

    assert [rule.id for rule in engine.get_rules()] == ["b", "c"]
