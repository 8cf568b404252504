"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram

# Message metrics
MESSAGES_PROCESSED = Counter(
    "automation_messages_processed_total",
    "Total number of inbound messages processed",
    ["channel", "status"],
)

PROCESSING_LATENCY = Histogram(
    "automation_processing_latency_seconds",
    "Latency of one process_message call",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Rule metrics
RULES_EVALUATED = Counter(
    "automation_rules_evaluated_total",
    "Total number of rule evaluations",
    ["trigger_kind"],
)

RULES_MATCHED = Counter(
    "automation_rules_matched_total",
    "Total number of rule matches",
    ["status"],
)

RULES_SHORT_CIRCUITED = Counter(
    "automation_rules_short_circuited_total",
    "Messages where a high-priority rule stopped evaluation",
)

CONDITION_ERRORS = Counter(
    "automation_condition_errors_total",
    "Conditions that failed because of invalid configuration",
    ["reason"],
)

# Action metrics
ACTIONS_EXECUTED = Counter(
    "automation_actions_executed_total",
    "Total actions dispatched",
    ["action_type", "status"],
)

# AI metrics
AI_REQUESTS = Counter(
    "automation_ai_requests_total",
    "Total AI analysis requests",
    ["status"],
)

AI_LATENCY = Histogram(
    "automation_ai_latency_seconds",
    "AI analysis latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Registry metrics
ACTIVE_ENGINES = Gauge(
    "automation_active_engines",
    "Number of tenant engines held by the registry",
)
