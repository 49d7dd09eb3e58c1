"""Cases router - API endpoints for cases."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response

from aidcrm.core.config import settings
from aidcrm.core.deps import get_current_actor, get_orchestrator, get_store
from aidcrm.db.enums import CaseStatus, CaseType
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.case import CaseFilters, CaseRead
from aidcrm.services import query_service
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.utils.pagination import Page, PaginationParams

router = APIRouter()


@router.get("", response_model=Page[CaseRead])
def list_cases(
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    status: CaseStatus | None = None,
    type: CaseType | None = None,
    beneficiary_id: UUID | None = None,
):
    filters = CaseFilters(status=status, type=type, beneficiary_id=beneficiary_id)
    return query_service.list_cases(store, actor, filters, PaginationParams(page, limit))


@router.post("", response_model=CaseRead, status_code=201)
def create_case(
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.create_case(actor, payload)


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return query_service.get_case(store, actor, case_id)


@router.patch("/{case_id}", response_model=CaseRead)
def update_case(
    case_id: UUID,
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.update_case(actor, case_id, payload)


@router.delete("/{case_id}", status_code=204)
def delete_case(
    case_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    """Hard delete. The case's services are removed with it."""
    orchestrator.delete_case(actor, case_id)
    return Response(status_code=204)
