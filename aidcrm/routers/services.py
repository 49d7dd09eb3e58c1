"""Services router - API endpoints for delivered service records."""

from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response

from aidcrm.core.config import settings
from aidcrm.core.deps import get_current_actor, get_orchestrator, get_store
from aidcrm.db.enums import ServiceType
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.service import ServiceFilters, ServiceRead
from aidcrm.services import query_service
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.utils.pagination import Page, PaginationParams

router = APIRouter()


@router.get("", response_model=Page[ServiceRead])
def list_services(
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    type: ServiceType | None = None,
    beneficiary_id: UUID | None = None,
    case_id: UUID | None = None,
    start_date: date | None = Query(None, description="Inclusive (YYYY-MM-DD)"),
    end_date: date | None = Query(None, description="Inclusive (YYYY-MM-DD)"),
):
    """List service records, most recent service date first."""
    filters = ServiceFilters(
        type=type,
        beneficiary_id=beneficiary_id,
        case_id=case_id,
        start_date=start_date,
        end_date=end_date,
    )
    return query_service.list_services(store, actor, filters, PaginationParams(page, limit))


@router.post("", response_model=ServiceRead, status_code=201)
def create_service(
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.create_service(actor, payload)


@router.get("/{service_id}", response_model=ServiceRead)
def get_service(
    service_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return query_service.get_service(store, actor, service_id)


@router.patch("/{service_id}", response_model=ServiceRead)
def update_service(
    service_id: UUID,
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.update_service(actor, service_id, payload)


@router.delete("/{service_id}", status_code=204)
def delete_service(
    service_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    orchestrator.delete_service(actor, service_id)
    return Response(status_code=204)
