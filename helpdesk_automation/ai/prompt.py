"""Prompt templates for message analysis and reply generation."""

ANALYSIS_SYSTEM_PROMPT = """You are a helpdesk triage assistant. You classify inbound customer messages
arriving by email, chat or webhook.

Always respond in JSON format with the following structure:
{
  "intent": "question | complaint | request | purchase | cancellation | feedback | spam | other",
  "sentiment": "positive | neutral | negative",
  "urgency": "low | medium | high | critical",
  "category": "short helpdesk category, e.g. billing, technical, account, sales, general",
  "keywords": ["up to 8 salient keywords"],
  "confidence": 0.0-1.0,
  "summary": "one sentence summary in the message's language",
  "requires_human_attention": true/false,
  "language": "ISO 639-1 code"
}

Important guidelines:
- Base the classification only on the message; do not invent facts
- Use "critical" urgency only for outages, security or legal threats
- If the message is ambiguous, lower the confidence instead of guessing
"""

ANALYSIS_USER_TEMPLATE = """
## Message
Channel: {channel}
From: {sender}
Subject: {subject}
Received: {timestamp}

{content}

Classify this message. Respond in JSON format.
"""

RESPONSE_SYSTEM_PROMPT = """You write replies on behalf of a helpdesk team.
Reply in {language}. Tone: {tone}.
Keep the reply short, courteous and specific to the customer's message.
Never promise refunds, deadlines or actions that the team has not confirmed.
{custom_instructions}
"""

RESPONSE_USER_TEMPLATE = """
## Customer message ({channel}, from {sender})
{content}

## Triage
Intent: {intent}
Sentiment: {sentiment}
Urgency: {urgency}
Summary: {summary}

Write the reply text only, without a subject line or signature placeholders.
"""


def build_analysis_prompt(
    content: str,
    sender: str,
    subject: str | None,
    channel: str,
    timestamp: str,
) -> tuple[str, str]:
    """Build system and user prompts for message classification.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    user_prompt = ANALYSIS_USER_TEMPLATE.format(
        channel=channel or "unknown",
        sender=sender or "unknown",
        subject=subject or "(none)",
        timestamp=timestamp,
        content=content or "(empty message)",
    )
    return ANALYSIS_SYSTEM_PROMPT, user_prompt


def build_response_prompt(
    content: str,
    channel: str,
    sender: str,
    intent: str,
    sentiment: str,
    urgency: str,
    summary: str,
    tone: str = "professional",
    language: str = "the customer's language",
    custom_instructions: str = "",
) -> tuple[str, str]:
    """Build system and user prompts for reply generation.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    system_prompt = RESPONSE_SYSTEM_PROMPT.format(
        language=language,
        tone=tone,
        custom_instructions=custom_instructions,
    )
    user_prompt = RESPONSE_USER_TEMPLATE.format(
        channel=channel or "unknown",
        sender=sender or "customer",
        content=content,
        intent=intent,
        sentiment=sentiment,
        urgency=urgency,
        summary=summary or "-",
    )
    return system_prompt, user_prompt
