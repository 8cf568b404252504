"""Rule dry-run and validation API routes."""

from fastapi import APIRouter
from pydantic import ValidationError

from helpdesk_automation.api.deps import RegistryDep, TenantDep
from helpdesk_automation.api.routes.rules import collect_rule_errors
from helpdesk_automation.models.rule import Rule
from helpdesk_automation.schemas.common import APIResponse
from helpdesk_automation.schemas.rule import (
    RuleCreate,
    RuleTestRequest,
    RuleTestResponse,
    ValidateRequest,
    ValidateResponse,
)

router = APIRouter(prefix="/rules", tags=["rules"])


@router.post("/validate", response_model=APIResponse[ValidateResponse])
async def validate_rule(
    data: ValidateRequest,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[ValidateResponse]:
    """Validate a rule definition without saving it.

    Reports schema errors, invalid regex patterns, AI fields on rules without
    AI and unsupported action types.
    """
    try:
        definition = RuleCreate.model_validate(data.rule)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        return APIResponse(data=ValidateResponse(valid=False, errors=errors))

    rule = Rule(
        id="validation",
        tenant_id=tenant_id,
        **definition.model_dump(),
    )
    errors = collect_rule_errors(rule, registry)

    return APIResponse(data=ValidateResponse(valid=not errors, errors=errors))


@router.post("/{rule_id}/test", response_model=APIResponse[RuleTestResponse])
async def test_rule(
    rule_id: str,
    data: RuleTestRequest,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleTestResponse]:
    """Dry-run a rule against a sample message.

    Evaluates the trigger and conditions only: no actions run and no
    statistics change. Rules are looked up in the live engine first, so
    built-in default rules can be tested too; unknown ids are reported in
    the result's error.
    """
    result = await registry.test_rule(tenant_id, rule_id, data.message)
    return APIResponse(data=RuleTestResponse.model_validate(result.model_dump()))
