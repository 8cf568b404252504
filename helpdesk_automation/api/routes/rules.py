"""Rule management API routes."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from helpdesk_automation.api.deps import PaginationDep, RegistryDep, RuleStoreDep, TenantDep
from helpdesk_automation.core.errors import RuleConfigurationError
from helpdesk_automation.engine.registry import EngineRegistry
from helpdesk_automation.models.rule import Rule, RuleMetadata
from helpdesk_automation.schemas.common import APIResponse, PaginatedResponse
from helpdesk_automation.schemas.rule import (
    RuleCreate,
    RuleCreateResponse,
    RuleResponse,
    RuleStatusUpdate,
    RuleUpdate,
)

router = APIRouter(prefix="/rules", tags=["rules"])


def collect_rule_errors(rule: Rule, registry: EngineRegistry) -> list[str]:
    """Problems that would make a rule silently never match or fail every run."""
    errors = rule.configuration_errors()

    seen: set[str] = set()
    for action in rule.actions:
        if action.id in seen:
            errors.append(f"Duplicate action id '{action.id}'")
        seen.add(action.id)
        if not registry.can_execute(action.type):
            errors.append(f"Action '{action.id}' has unsupported type '{action.type}'")
    return errors


def _build_rule(rule_id: str, tenant_id: str, data: RuleCreate, metadata: RuleMetadata) -> Rule:
    return Rule(
        id=rule_id,
        tenant_id=tenant_id,
        name=data.name,
        description=data.description,
        enabled=data.enabled,
        priority=data.priority,
        ai_enabled=data.ai_enabled,
        trigger=data.trigger,
        actions=data.actions,
        metadata=metadata,
    )


def _ensure_valid(rule: Rule, registry: EngineRegistry) -> None:
    errors = collect_rule_errors(rule, registry)
    if errors:
        raise RuleConfigurationError(errors)


async def _load_rule(store: RuleStoreDep, rule_id: str, tenant_id: str) -> Rule:
    rule = await store.find_by_id(rule_id, tenant_id)
    if not rule:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")
    return rule


@router.post("", response_model=APIResponse[RuleCreateResponse])
async def create_rule(
    data: RuleCreate,
    store: RuleStoreDep,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleCreateResponse]:
    """Create a new rule."""
    rule_id = f"rule_{datetime.now(timezone.utc).strftime('%Y%m%d')}_{uuid.uuid4().hex[:8]}"
    rule = _build_rule(rule_id, tenant_id, data, RuleMetadata())
    _ensure_valid(rule, registry)

    created = await store.create(rule)
    await registry.sync_rule(tenant_id, created.id)

    return APIResponse(
        message="Rule created",
        data=RuleCreateResponse(id=created.id, created_at=created.metadata.created_at),
    )


@router.get("", response_model=PaginatedResponse[RuleResponse])
async def list_rules(
    store: RuleStoreDep,
    tenant_id: TenantDep,
    pagination: PaginationDep,
    enabled: bool | None = Query(default=None, description="Filter by enabled status"),
    priority: int | None = Query(default=None, ge=1, le=10, description="Filter by priority"),
    search: str | None = Query(default=None, description="Filter by name/description substring"),
) -> PaginatedResponse[RuleResponse]:
    """List a tenant's rules in evaluation order."""
    rules = await store.find_by_tenant(tenant_id)

    if enabled is not None:
        rules = [r for r in rules if r.enabled == enabled]
    if priority is not None:
        rules = [r for r in rules if r.priority == priority]
    if search:
        needle = search.lower()
        rules = [r for r in rules if needle in r.name.lower() or needle in r.description.lower()]

    rules.sort(key=lambda r: (-r.priority, r.id))

    total = len(rules)
    start = pagination.offset
    paginated = rules[start:start + pagination.page_size]

    return PaginatedResponse(
        data=[RuleResponse.model_validate(r.model_dump()) for r in paginated],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get("/{rule_id}", response_model=APIResponse[RuleResponse])
async def get_rule(
    rule_id: str,
    store: RuleStoreDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleResponse]:
    """Get a single rule by ID."""
    rule = await _load_rule(store, rule_id, tenant_id)
    return APIResponse(data=RuleResponse.model_validate(rule.model_dump()))


@router.put("/{rule_id}", response_model=APIResponse[RuleResponse])
async def replace_rule(
    rule_id: str,
    data: RuleCreate,
    store: RuleStoreDep,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleResponse]:
    """Replace an existing rule. Execution statistics are kept."""
    existing = await _load_rule(store, rule_id, tenant_id)

    rule = _build_rule(rule_id, tenant_id, data, existing.metadata)
    _ensure_valid(rule, registry)

    result = await store.update(rule)
    if not result:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")
    await registry.sync_rule(tenant_id, rule_id)

    return APIResponse(message="Rule updated", data=RuleResponse.model_validate(result.model_dump()))


@router.patch("/{rule_id}", response_model=APIResponse[RuleResponse])
async def update_rule(
    rule_id: str,
    data: RuleUpdate,
    store: RuleStoreDep,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleResponse]:
    """Partially update an existing rule."""
    existing = await _load_rule(store, rule_id, tenant_id)

    changes = data.model_dump(exclude_unset=True)
    updated_dict = existing.model_dump()
    updated_dict.update(changes)
    if "ai_enabled" in changes and "trigger" not in changes:
        # Rule and trigger flags are ORed on validation; both must follow the update
        updated_dict["trigger"]["ai_enabled"] = changes["ai_enabled"]
    try:
        rule = Rule.model_validate(updated_dict)
    except ValidationError as e:
        raise RuleConfigurationError([error["msg"] for error in e.errors()]) from e
    _ensure_valid(rule, registry)

    result = await store.update(rule)
    if not result:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")
    await registry.sync_rule(tenant_id, rule_id)

    return APIResponse(message="Rule updated", data=RuleResponse.model_validate(result.model_dump()))


@router.delete("/{rule_id}", response_model=APIResponse)
async def delete_rule(
    rule_id: str,
    store: RuleStoreDep,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse:
    """Delete a rule."""
    deleted = await store.delete(rule_id, tenant_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")
    await registry.remove_rule(tenant_id, rule_id)

    return APIResponse(message=f"Rule {rule_id} deleted")


@router.patch("/{rule_id}/status", response_model=APIResponse[RuleResponse])
async def update_rule_status(
    rule_id: str,
    data: RuleStatusUpdate,
    store: RuleStoreDep,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[RuleResponse]:
    """Enable or disable a rule."""
    updated = await store.set_enabled(rule_id, tenant_id, data.enabled)
    if not updated:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")
    await registry.sync_rule(tenant_id, rule_id)

    state = "enabled" if data.enabled else "disabled"
    return APIResponse(message=f"Rule {state}", data=RuleResponse.model_validate(updated.model_dump()))
