"""Audit router - read-only access to the audit trail (admins only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from aidcrm.core.config import settings
from aidcrm.core.deps import get_current_actor, get_store
from aidcrm.db.enums import AuditAction
from aidcrm.db.store import EntityStore
from aidcrm.schemas.audit import AuditFilters, AuditLogEntry
from aidcrm.schemas.auth import Actor
from aidcrm.services import query_service
from aidcrm.utils.pagination import Page, PaginationParams

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=Page[AuditLogEntry])
def list_audit_entries(
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    action: AuditAction | None = None,
    user_id: UUID | None = None,
    entity_id: UUID | None = Query(None, description="Beneficiary, case or service id"),
):
    """List audit entries, newest first."""
    filters = AuditFilters(action=action, user_id=user_id, entity_id=entity_id)
    return query_service.list_audit_entries(store, actor, filters, PaginationParams(page, limit))
