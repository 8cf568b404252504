"""Automation error types."""


class AutomationError(Exception):
    """Base class for errors raised by the automation core."""


class RuleLoadError(AutomationError):
    """The rule repository could not provide a tenant's rules."""

    def __init__(self, tenant_id: str, cause: Exception | None = None):
        self.tenant_id = tenant_id
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to load rules for tenant {tenant_id}{detail}")


class RuleNotFoundError(AutomationError):
    """A rule id is unknown for the tenant."""

    def __init__(self, rule_id: str, tenant_id: str):
        self.rule_id = rule_id
        self.tenant_id = tenant_id
        super().__init__(f"Rule {rule_id} not found")


class RuleConfigurationError(AutomationError):
    """A rule definition would never behave as written."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid rule configuration")
