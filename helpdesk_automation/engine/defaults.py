"""Built-in default rules and rule templates."""

from typing import Any

from helpdesk_automation.models.rule import (
    Action,
    Condition,
    ConditionField,
    ConditionOperator,
    Rule,
    Trigger,
    TriggerKind,
)

DEFAULT_RULE_PREFIX = "default_"


def default_rules(tenant_id: str) -> list[Rule]:
    """Rules installed when a tenant's rules cannot be loaded.

    They only tag and open tickets, so running them on a tenant that has its
    own configuration is harmless.
    """
    return [
        Rule(
            id=f"{DEFAULT_RULE_PREFIX}urgent_keywords",
            tenant_id=tenant_id,
            name="Tag urgent messages",
            description="Tags messages that mention urgency",
            priority=6,
            trigger=Trigger(
                kind=TriggerKind.MESSAGE_RECEIVED,
                conditions=[
                    Condition(
                        field=ConditionField.CONTENT,
                        operator=ConditionOperator.REGEX,
                        value=r"\b(urgent[e]?|emergency|emergência|asap)\b",
                    ),
                ],
            ),
            actions=[
                Action(id="tag_urgent", type="add_tag", params={"tags": ["urgent", "auto-detected"]}),
            ],
        ),
        Rule(
            id=f"{DEFAULT_RULE_PREFIX}email_to_ticket",
            tenant_id=tenant_id,
            name="Open a ticket for inbound email",
            description="Creates a ticket for every inbound email",
            priority=3,
            trigger=Trigger(kind=TriggerKind.EMAIL_RECEIVED),
            actions=[
                Action(id="create_ticket", type="create_ticket", params={"subcategory": "Email"}),
            ],
        ),
    ]


RULE_TEMPLATES: list[dict[str, Any]] = [
    {
        "id": "auto-reply-keywords",
        "name": "Auto Reply on Keywords",
        "description": "Automatically reply to messages containing specific keywords",
        "category": "Customer Service",
        "rule": {
            "trigger": {"kind": "keyword_match", "keywords": ["help", "support", "problem"]},
            "actions": [
                {
                    "id": "reply",
                    "type": "send_auto_reply",
                    "params": {
                        "template": "Thank you for contacting us, {{sender}}! We have received your "
                        "message and will respond within 24 hours.",
                    },
                    "priority": 1,
                },
            ],
            "priority": 5,
        },
    },
    {
        "id": "urgent-escalation",
        "name": "Urgent Priority Escalation",
        "description": "Escalate urgent messages to the management team",
        "category": "Escalation",
        "rule": {
            "trigger": {
                "kind": "message_received",
                "conditions": [{"field": "priority", "operator": "equals", "value": "urgent"}],
            },
            "actions": [
                {
                    "id": "notify",
                    "type": "notify_team",
                    "params": {
                        "message": "Urgent message from {{sender}} requires immediate attention",
                        "targets": [{"type": "email", "to": ["managers@example.com"]}],
                    },
                    "priority": 1,
                },
                {
                    "id": "ticket",
                    "type": "create_ticket",
                    "params": {"category": "escalated"},
                    "priority": 2,
                },
            ],
            "priority": 9,
        },
    },
    {
        "id": "off-hours-autoresponder",
        "name": "Off-Hours Auto Responder",
        "description": "Send automatic responses outside business hours",
        "category": "Availability",
        "rule": {
            "trigger": {"kind": "time_based", "time_window": {"start": "18:00", "end": "09:00"}},
            "actions": [
                {
                    "id": "reply",
                    "type": "auto_reply",
                    "params": {
                        "template": "Thank you for your message. Our business hours are 9 AM to 6 PM. "
                        "We will respond during our next business day.",
                    },
                    "priority": 1,
                },
            ],
            "priority": 4,
        },
    },
    {
        "id": "spam-filter",
        "name": "Spam Detection",
        "description": "Tag suspected spam messages",
        "category": "Security",
        "rule": {
            "trigger": {
                "kind": "message_received",
                "conditions": [
                    {
                        "field": "content",
                        "operator": "regex",
                        "value": "(viagra|casino|lottery|winner|congratulations|free money)",
                    }
                ],
            },
            "actions": [
                {"id": "tag", "type": "add_tag", "params": {"tags": ["spam", "auto-filtered"]}, "priority": 1},
            ],
            "priority": 10,
        },
    },
    {
        "id": "vip-customer-priority",
        "name": "VIP Customer Priority Handling",
        "description": "Give special treatment to VIP customers",
        "category": "VIP Service",
        "rule": {
            "trigger": {
                "kind": "message_received",
                "conditions": [{"field": "sender", "operator": "regex", "value": "@vip-domain\\.com$"}],
            },
            "actions": [
                {"id": "tag", "type": "add_tag", "params": {"tags": ["vip", "priority"]}, "priority": 1},
                {"id": "assign", "type": "assign_user", "target": "senior-agent-id", "priority": 2},
            ],
            "priority": 8,
        },
    },
    {
        "id": "ai-intelligent-response",
        "name": "AI Contextual Response",
        "description": "Generate contextual automatic replies with AI",
        "category": "AI & Automation",
        "rule": {
            "trigger": {"kind": "ai_analysis", "ai_enabled": True},
            "actions": [
                {
                    "id": "ai_reply",
                    "type": "ai_response",
                    "ai_enabled": True,
                    "params": {
                        "tone": "professional",
                        "custom_instructions": "Offer specific help based on the message context.",
                    },
                    "priority": 1,
                },
            ],
            "priority": 3,
        },
    },
    {
        "id": "ai-complaint-escalation",
        "name": "AI Complaint Escalation",
        "description": "Escalate complaints detected by AI analysis",
        "category": "AI & Automation",
        "rule": {
            "trigger": {
                "kind": "ai_analysis",
                "ai_enabled": True,
                "conditions": [
                    {"field": "ai_intent", "operator": "equals", "value": "complaint"},
                    {"field": "ai_confidence", "operator": "greater_than", "value": 0.6},
                ],
            },
            "actions": [
                {"id": "escalate", "type": "escalate", "params": {"level": "supervisor"}, "priority": 1},
                {"id": "ticket", "type": "create_ticket", "priority": 2},
            ],
            "priority": 8,
        },
    },
]
