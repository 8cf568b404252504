"""Engine operation API routes."""

from fastapi import APIRouter, Query

from helpdesk_automation.api.deps import RegistryDep, TenantDep
from helpdesk_automation.engine.defaults import RULE_TEMPLATES
from helpdesk_automation.models.execution import EngineMetrics, ProcessingReport
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.observability.tracing import TraceContext
from helpdesk_automation.schemas.automation import ReloadResponse, RuleTemplate
from helpdesk_automation.schemas.common import APIResponse

router = APIRouter(prefix="/automation", tags=["automation"])


@router.get("/metrics", response_model=APIResponse[EngineMetrics])
async def get_metrics(registry: RegistryDep, tenant_id: TenantDep) -> APIResponse[EngineMetrics]:
    """Engine metrics of the calling tenant."""
    return APIResponse(data=registry.get_metrics(tenant_id))


@router.get("/metrics/all", response_model=APIResponse[dict[str, EngineMetrics]])
async def get_all_metrics(registry: RegistryDep) -> APIResponse[dict[str, EngineMetrics]]:
    """Engine metrics of every tenant with a live engine."""
    return APIResponse(data=registry.get_aggregate_metrics())


@router.post("/reload", response_model=APIResponse[ReloadResponse])
async def reload_rules(registry: RegistryDep, tenant_id: TenantDep) -> APIResponse[ReloadResponse]:
    """Reload the tenant's rules from storage."""
    count = await registry.reload_engine_rules(tenant_id)
    return APIResponse(
        message=f"Reloaded {count} rules",
        data=ReloadResponse(tenant_id=tenant_id, rule_count=count),
    )


@router.get("/templates", response_model=APIResponse[list[RuleTemplate]])
async def list_templates(
    category: str | None = Query(default=None, description="Filter by template category"),
) -> APIResponse[list[RuleTemplate]]:
    templates = [RuleTemplate.model_validate(item) for item in RULE_TEMPLATES]
    if category:
        templates = [t for t in templates if t.category.lower() == category.lower()]
    return APIResponse(data=templates)


@router.post("/messages", response_model=APIResponse[ProcessingReport])
async def process_message(
    message: InboundMessage,
    registry: RegistryDep,
    tenant_id: TenantDep,
) -> APIResponse[ProcessingReport]:
    """Run one normalized message through the tenant's rules."""
    with TraceContext(message.message_id):
        report = await registry.process_message(tenant_id, message)
    return APIResponse(data=report)
