"""API dependency injection."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, Request

from helpdesk_automation.engine.registry import EngineRegistry
from helpdesk_automation.schemas.common import PaginationParams
from helpdesk_automation.storage.redis_client import get_redis
from helpdesk_automation.storage.rule_store import RuleStore


def get_rule_store() -> RuleStore:
    """Get rule store instance."""
    return RuleStore(get_redis())


def get_registry(request: Request) -> EngineRegistry:
    """Engine registry created by the application lifespan."""
    return request.app.state.registry


def get_tenant_id(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID", description="Tenant identifier"),
) -> str:
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(status_code=400, detail="Missing X-Tenant-ID header")
    return x_tenant_id.strip()


def get_pagination(
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    """Get pagination parameters from query."""
    return PaginationParams(page=page, page_size=page_size)


# Type aliases for dependency injection
RuleStoreDep = Annotated[RuleStore, Depends(get_rule_store)]
RegistryDep = Annotated[EngineRegistry, Depends(get_registry)]
TenantDep = Annotated[str, Depends(get_tenant_id)]
PaginationDep = Annotated[PaginationParams, Depends(get_pagination)]
