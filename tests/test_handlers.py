"""Tests for the built-in action handlers."""

import json

import httpx
import pytest

from helpdesk_automation.actions.handlers.base import render_template
from helpdesk_automation.actions.handlers.notify import NotifyTeamHandler
from helpdesk_automation.actions.handlers.reply import AIResponseHandler, AutoReplyHandler
from helpdesk_automation.actions.handlers.routing import ForwardHandler, HelpdeskCommandHandler
from helpdesk_automation.actions.handlers.ticket import TicketHandler
from helpdesk_automation.actions.handlers.webhook import WebhookHandler
from helpdesk_automation.core.config import Settings
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import ExecutionContext
from helpdesk_automation.models.notification import NotifyTarget, TeamNotification
from helpdesk_automation.models.rule import Action
from helpdesk_automation.notification.channels.base import NotificationChannel
from helpdesk_automation.storage.auxiliary import OutboundQueue
from helpdesk_automation.storage.redis_client import RedisKeys

from tests.fakes import FakeAIPort


def _context(analysis: AIAnalysis | None = None, **message) -> ExecutionContext:
    message_data = {
        "message_id": "msg_42",
        "content": "My card was charged twice",
        "sender": "carol@example.com",
        "subject": "Billing",
        "channel": "email",
        "timestamp": "2026-01-12T14:30:00+00:00",
        "metadata": {},
    }
    message_data.update(message)
    return ExecutionContext(
        tenant_id="tenant-a",
        message_data=message_data,
        ai_analysis=analysis,
        rule_id="r1",
        rule_name="Billing rule",
    )


class FakeChannel(NotificationChannel):
    def __init__(self, channel_type: str, succeed: bool = True):
        self._channel_type = channel_type
        self._succeed = succeed
        self.sent: list[tuple[NotifyTarget, TeamNotification]] = []

    @property
    def channel_type(self) -> str:
        return self._channel_type

    async def send(self, target: NotifyTarget, notification: TeamNotification) -> bool:
        self.sent.append((target, notification))
        return self._succeed


def test_render_template_fills_known_placeholders() -> None:
    context = _context(AIAnalysis(intent="complaint", urgency="high"))

    rendered = render_template("Hi {{sender}} via {{ channel }}: {{ai_intent}}/{{ai_urgency}} {{unknown}}", context)

    assert rendered == "Hi carol@example.com via email: complaint/high {{unknown}}"


@pytest.mark.asyncio
async def test_ticket_handler_posts_to_helpdesk_api() -> None:
    requests: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": "T-1001"})

    settings = Settings(_env_file=None, helpdesk_api_base_url="http://helpdesk.test/")
    handler = TicketHandler(settings, httpx.AsyncClient(transport=httpx.MockTransport(respond)))
    analysis = AIAnalysis(intent="complaint", urgency="critical", confidence=0.9, summary="Double charge")

    result = await handler.handle(Action(id="t", type="create_ticket"), _context(analysis))

    assert result.success is True
    assert result.data == {"ticket_id": "T-1001", "priority": "urgent"}
    request = requests[0]
    assert str(request.url) == "http://helpdesk.test/api/tickets"
    assert request.headers["X-Tenant-ID"] == "tenant-a"
    payload = json.loads(request.content)
    assert payload["subject"] == "Billing"
    assert "Double charge" in payload["description"]
    assert payload["source_message_id"] == "msg_42"


@pytest.mark.asyncio
async def test_ticket_handler_reports_api_rejection() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(400, text="bad ticket"))
    handler = TicketHandler(Settings(_env_file=None), httpx.AsyncClient(transport=transport))

    result = await handler.handle(Action(id="t", type="create_ticket", params={"priority": "low"}), _context())

    assert result.success is False
    assert result.error == "bad ticket"


@pytest.mark.asyncio
async def test_auto_reply_is_queued(redis) -> None:
    handler = AutoReplyHandler(OutboundQueue(redis))
    action = Action(id="reply", type="send_auto_reply", params={"template": "Thanks {{sender}}!"})

    result = await handler.handle(action, _context())

    assert result.success is True
    queued = json.loads(await redis.rpop(RedisKeys.OUTBOUND_REPLIES))
    assert queued["body"] == "Thanks carol@example.com!"
    assert queued["recipient"] == "carol@example.com"
    assert queued["subject"] == "Re: Billing"
    assert queued["in_reply_to"] == "msg_42"


@pytest.mark.asyncio
async def test_auto_reply_without_template_fails(redis) -> None:
    handler = AutoReplyHandler(OutboundQueue(redis))

    result = await handler.handle(Action(id="reply", type="auto_reply"), _context())

    assert result.success is False
    assert await redis.llen(RedisKeys.OUTBOUND_REPLIES) == 0


@pytest.mark.asyncio
async def test_ai_response_uses_shared_analysis(redis) -> None:
    ai_port = FakeAIPort(reply="We refunded the duplicate charge.")
    handler = AIResponseHandler(ai_port, OutboundQueue(redis))
    analysis = AIAnalysis(intent="complaint", confidence=0.8)
    action = Action(id="ai", type="ai_response", params={"tone": "friendly"})

    result = await handler.handle(action, _context(analysis))

    assert result.success is True
    assert ai_port.response_calls[0]["analysis"] == analysis
    assert ai_port.response_calls[0]["options"]["tone"] == "friendly"
    queued = json.loads(await redis.rpop(RedisKeys.OUTBOUND_REPLIES))
    assert queued["body"] == "We refunded the duplicate charge."


@pytest.mark.asyncio
async def test_ai_response_without_analysis_fails(redis) -> None:
    ai_port = FakeAIPort()
    handler = AIResponseHandler(ai_port, OutboundQueue(redis))

    result = await handler.handle(Action(id="ai", type="ai_response"), _context())

    assert result.success is False
    assert result.error == "missing_analysis"
    assert ai_port.response_calls == []


@pytest.mark.asyncio
async def test_forward_requires_target(redis) -> None:
    handler = ForwardHandler(OutboundQueue(redis))

    missing = await handler.handle(Action(id="f", type="forward_message"), _context())
    forwarded = await handler.handle(
        Action(id="f", type="forward_message", target="billing@example.com", params={"note": "From {{sender}}"}),
        _context(),
    )

    assert missing.success is False
    assert forwarded.success is True
    queued = json.loads(await redis.rpop(RedisKeys.OUTBOUND_REPLIES))
    assert queued["recipient"] == "billing@example.com"
    assert queued["body"].startswith("From carol@example.com")
    assert queued["subject"] == "Fwd: Billing"


@pytest.mark.asyncio
async def test_helpdesk_commands_are_queued(redis) -> None:
    handler = HelpdeskCommandHandler(OutboundQueue(redis))

    tagged = await handler.handle(Action(id="t", type="add_tag", params={"tags": ["vip", "billing"]}), _context())
    assigned = await handler.handle(Action(id="a", type="assign_user", target="agent-7"), _context())
    escalated = await handler.handle(Action(id="e", type="escalate"), _context())
    untagged = await handler.handle(Action(id="t2", type="add_tag"), _context())

    assert tagged.success and assigned.success and escalated.success
    assert untagged.success is False
    commands = [json.loads(item) for item in await redis.lrange(RedisKeys.HELPDESK_COMMANDS, 0, -1)]
    commands.reverse()
    assert [c["command"] for c in commands] == ["add_tag", "assign_user", "escalate"]
    assert commands[0]["payload"] == {"tags": ["vip", "billing"]}
    assert commands[1]["payload"] == {"user_id": "agent-7"}
    assert commands[2]["payload"]["reason"] == "Escalated by rule Billing rule"


@pytest.mark.asyncio
async def test_webhook_retries_server_errors() -> None:
    attempts: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(503 if len(attempts) < 2 else 200)

    settings = Settings(_env_file=None, webhook_max_retries=2, webhook_user_agent="TestAgent/1.0")
    handler = WebhookHandler(settings, httpx.AsyncClient(transport=httpx.MockTransport(respond)), backoff_seconds=0)

    result = await handler.handle(Action(id="w", type="webhook", target="http://hooks.test/in"), _context())

    assert result.success is True
    assert result.data["attempts"] == 2
    payload = json.loads(attempts[-1].content)
    assert payload["tenant"] == "tenant-a"
    assert payload["rule"] == {"id": "r1", "name": "Billing rule"}
    assert payload["message"]["message_id"] == "msg_42"
    assert payload["aiAnalysis"] is None
    assert attempts[-1].headers["User-Agent"] == "TestAgent/1.0"


@pytest.mark.asyncio
async def test_webhook_gives_up_on_client_error() -> None:
    attempts: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(404)

    handler = WebhookHandler(
        Settings(_env_file=None, webhook_max_retries=3),
        httpx.AsyncClient(transport=httpx.MockTransport(respond)),
        backoff_seconds=0,
    )

    result = await handler.handle(Action(id="w", type="webhook", params={"url": "http://hooks.test/in"}), _context())

    assert result.success is False
    assert result.error == "HTTP 404"
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_webhook_retries_transport_errors_then_fails() -> None:
    attempts: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    handler = WebhookHandler(
        Settings(_env_file=None, webhook_max_retries=1),
        httpx.AsyncClient(transport=httpx.MockTransport(respond)),
        backoff_seconds=0,
    )

    result = await handler.handle(Action(id="w", type="webhook", target="http://hooks.test/in"), _context())

    assert result.success is False
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_notify_team_succeeds_if_any_target_delivered() -> None:
    telegram = FakeChannel("telegram", succeed=False)
    email = FakeChannel("email")
    handler = NotifyTeamHandler([telegram, email])
    action = Action(
        id="n",
        type="notify_team",
        params={
            "message": "Complaint from {{sender}}",
            "targets": [{"type": "telegram", "chat_id": "1"}, {"type": "email", "to": ["ops@example.com"]}],
        },
    )

    result = await handler.handle(action, _context())

    assert result.success is True
    assert result.data["delivered"] == 1
    assert result.data["failed"] == 1
    notification = email.sent[0][1]
    assert notification.message == "Complaint from carol@example.com"
    assert notification.title == "Automation: Billing rule"


@pytest.mark.asyncio
async def test_notify_team_without_targets_fails() -> None:
    handler = NotifyTeamHandler([FakeChannel("email")])

    result = await handler.handle(Action(id="n", type="notify_team"), _context())

    assert result.success is False
