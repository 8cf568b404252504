"""Tests for AI response parsing and the analyzer."""

from types import SimpleNamespace

import pytest

from helpdesk_automation.ai.analyzer import OpenAIAnalyzer, analyze_safely
from helpdesk_automation.ai.parser import parse_analysis_response
from helpdesk_automation.core.config import Settings
from helpdesk_automation.models.message import InboundMessage

from tests.fakes import FakeAIPort


class FakeCompletions:
    def __init__(self, content: str | None = None, error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


class UnavailableRedis:
    """Redis client whose every call fails."""

    async def get(self, key: str):
        raise ConnectionError("redis down")

    async def setex(self, key: str, ttl: int, value: str):
        raise ConnectionError("redis down")


def _client(completions: FakeCompletions) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_parse_wrapped_json() -> None:
    response = """Here you go:
    {"intent": "Complaint", "sentiment": "NEGATIVE", "urgency": "critical", "category": "billing",
     "keywords": "refund, charge", "confidence": 1.7, "summary": "Double charge",
     "requires_human_attention": "true", "language": "en"}
    """

    analysis = parse_analysis_response(response)

    assert analysis.intent == "complaint"
    assert analysis.sentiment == "negative"
    assert analysis.urgency == "critical"
    assert analysis.keywords == ["refund", "charge"]
    assert analysis.confidence == 1.0
    assert analysis.requires_human_attention is True


def test_parse_normalizes_unknown_labels() -> None:
    analysis = parse_analysis_response('{"intent": "question", "sentiment": "angry", "urgency": "asap"}')

    assert analysis.sentiment == "neutral"
    assert analysis.urgency == "medium"


@pytest.mark.parametrize("response", ["no json here", "{not valid json}", "[1, 2]"])
def test_parse_falls_back_on_garbage(response: str) -> None:
    analysis = parse_analysis_response(response)

    assert analysis.intent == "other"
    assert analysis.confidence == 0


@pytest.mark.asyncio
async def test_analyzer_falls_back_on_provider_error(message: InboundMessage) -> None:
    completions = FakeCompletions(error=RuntimeError("503 from provider"))
    analyzer = OpenAIAnalyzer(Settings(_env_file=None), client=_client(completions))

    analysis = await analyzer.analyze(message)

    assert analysis.intent == "other"
    assert analysis.confidence == 0
    assert completions.calls == 1


@pytest.mark.asyncio
async def test_analyzer_caches_by_message_fields(message: InboundMessage, redis) -> None:
    completions = FakeCompletions('{"intent": "question", "confidence": 0.8}')
    analyzer = OpenAIAnalyzer(Settings(_env_file=None), redis=redis, client=_client(completions))

    first = await analyzer.analyze(message)
    second = await analyzer.analyze(message.model_copy(update={"message_id": "msg_other"}))

    assert first == second
    assert first.intent == "question"
    assert completions.calls == 1


@pytest.mark.asyncio
async def test_generate_response_strips_reply(message: InboundMessage) -> None:
    completions = FakeCompletions("  Hello Alice, we fixed it.  ")
    analyzer = OpenAIAnalyzer(Settings(_env_file=None), client=_client(completions))

    reply = await analyzer.generate_response(parse_analysis_response("{}"), message.content, {"tone": "friendly"})

    assert reply == "Hello Alice, we fixed it."


@pytest.mark.asyncio
async def test_analyze_safely_enforces_deadline(message: InboundMessage) -> None:
    ai_port = FakeAIPort(delay=1.0)

    analysis = await analyze_safely(ai_port, message, timeout=0.05)

    assert analysis.intent == "other"
    assert analysis.confidence == 0


@pytest.mark.asyncio
async def test_cache_outage_keeps_provider_analysis(message: InboundMessage) -> None:
    completions = FakeCompletions('{"intent": "question", "confidence": 0.8}')
    analyzer = OpenAIAnalyzer(Settings(_env_file=None), redis=UnavailableRedis(), client=_client(completions))

    analysis = await analyzer.analyze(message)

    assert analysis.intent == "question"
    assert analysis.confidence == 0.8
    assert completions.calls == 1
