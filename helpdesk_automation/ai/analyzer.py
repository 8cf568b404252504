"""AI analysis provider backed by an OpenAI-compatible chat API."""

import asyncio
import hashlib
import json
import time
from typing import Any

from openai import AsyncOpenAI
from redis.asyncio import Redis

from helpdesk_automation.ai.parser import parse_analysis_response
from helpdesk_automation.ai.prompt import build_analysis_prompt, build_response_prompt
from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.ports import AIAnalysisPort
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.observability.metrics import AI_LATENCY, AI_REQUESTS
from helpdesk_automation.storage.auxiliary import AnalysisCacheStore

logger = get_logger(__name__)


class OpenAIAnalyzer:
    """Classifies messages and drafts replies with an LLM."""

    def __init__(
        self,
        settings: Settings | None = None,
        redis: Redis | None = None,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize analyzer.

        Args:
            settings: Application settings
            redis: Redis client for the analysis cache (optional)
            client: Preconfigured OpenAI client (optional)
        """
        self._settings = settings or get_settings()
        self._client = client or AsyncOpenAI(
            api_key=self._settings.openai_api_key or "dummy-key",
            base_url=self._settings.openai_base_url,
            timeout=self._settings.openai_timeout,
        )
        self._cache = (
            AnalysisCacheStore(redis)
            if redis is not None and self._settings.analysis_cache_ttl_seconds > 0
            else None
        )

    async def analyze(self, message: InboundMessage) -> AIAnalysis:
        """Classify a message. Returns a fallback analysis on provider failure."""
        cache_key = self._compute_cache_key(message)
        if self._cache:
            try:
                cached = await self._cache.get(cache_key)
            except Exception as e:
                logger.warning("AI analysis cache read failed", message_id=message.message_id, error=str(e))
                cached = None
            if cached:
                logger.debug("AI analysis cache hit", message_id=message.message_id)
                return AIAnalysis.model_validate(cached)

        system_prompt, user_prompt = build_analysis_prompt(
            content=message.content,
            sender=message.sender,
            subject=message.subject,
            channel=message.channel,
            timestamp=message.timestamp.isoformat(),
        )

        try:
            content = await self._complete(system_prompt, user_prompt, temperature=0.1, max_tokens=400)
        except Exception as e:
            logger.error("AI analysis call failed", message_id=message.message_id, error=str(e))
            return AIAnalysis.fallback(f"provider error: {e}")

        analysis = parse_analysis_response(content)

        if self._cache and analysis.confidence > 0:
            try:
                await self._cache.set(
                    cache_key,
                    analysis.model_dump(),
                    ttl=self._settings.analysis_cache_ttl_seconds,
                )
            except Exception as e:
                logger.warning("AI analysis cache write failed", message_id=message.message_id, error=str(e))

        return analysis

    async def generate_response(
        self,
        analysis: AIAnalysis,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> str:
        """Draft a reply to a customer message.

        Args:
            analysis: Analysis of the message being answered
            content: Original message text
            options: channel, sender, tone, language, custom_instructions

        Returns:
            Reply text

        Raises:
            openai.OpenAIError: When the provider call fails
        """
        options = options or {}
        system_prompt, user_prompt = build_response_prompt(
            content=content,
            channel=options.get("channel") or "",
            sender=options.get("sender") or "",
            intent=analysis.intent,
            sentiment=analysis.sentiment,
            urgency=analysis.urgency,
            summary=analysis.summary,
            tone=options.get("tone") or "professional",
            language=options.get("language") or analysis.language,
            custom_instructions=options.get("custom_instructions") or "",
        )
        reply = await self._complete(system_prompt, user_prompt, temperature=0.4, max_tokens=600)
        return reply.strip()

    async def close(self) -> None:
        await self._client.close()

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        response = await self._client.chat.completions.create(
            model=self._settings.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""

    @staticmethod
    def _compute_cache_key(message: InboundMessage) -> str:
        data = json.dumps(
            [message.channel, message.sender, message.subject, message.content],
            ensure_ascii=False,
        )
        return hashlib.sha256(data.encode()).hexdigest()[:24]


async def analyze_safely(
    ai_port: AIAnalysisPort,
    message: InboundMessage,
    timeout: float,
) -> AIAnalysis:
    """Call the AI port with a deadline, degrading to the fallback analysis.

    Args:
        ai_port: Analysis provider
        message: Message to classify
        timeout: Deadline in seconds

    Returns:
        Provider analysis, or ``AIAnalysis.fallback()`` on timeout/error
    """
    start_time = time.perf_counter()
    try:
        analysis = await asyncio.wait_for(ai_port.analyze(message), timeout=timeout)
    except asyncio.TimeoutError:
        AI_REQUESTS.labels(status="timeout").inc()
        logger.warning("AI analysis timed out", message_id=message.message_id, timeout=timeout)
        return AIAnalysis.fallback("timeout")
    except Exception as e:
        AI_REQUESTS.labels(status="error").inc()
        logger.error("AI analysis failed", message_id=message.message_id, error=str(e))
        return AIAnalysis.fallback(str(e))

    AI_REQUESTS.labels(status="ok").inc()
    AI_LATENCY.observe(time.perf_counter() - start_time)
    return analysis
