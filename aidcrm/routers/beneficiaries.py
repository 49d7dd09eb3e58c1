"""Beneficiaries router - API endpoints for beneficiary records."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from aidcrm.core.config import settings
from aidcrm.core.deps import get_current_actor, get_orchestrator, get_store
from aidcrm.db.enums import BeneficiaryCategory, BeneficiaryStatus
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryFilters, BeneficiaryRead
from aidcrm.services import query_service
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.utils.pagination import Page, PaginationParams

router = APIRouter()


@router.get("", response_model=Page[BeneficiaryRead])
def list_beneficiaries(
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    search: str | None = Query(None, description="Name, phone, email or ID number"),
    category: BeneficiaryCategory | None = None,
    status: BeneficiaryStatus | None = None,
    created_after: datetime | None = None,
):
    """List beneficiaries visible to the caller, newest first."""
    filters = BeneficiaryFilters(
        search=search, category=category, status=status, created_after=created_after
    )
    return query_service.list_beneficiaries(store, actor, filters, PaginationParams(page, limit))


@router.post("", response_model=BeneficiaryRead, status_code=201)
def create_beneficiary(
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.create_beneficiary(actor, payload)


@router.get("/{beneficiary_id}", response_model=BeneficiaryRead)
def get_beneficiary(
    beneficiary_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return query_service.get_beneficiary(store, actor, beneficiary_id)


@router.patch("/{beneficiary_id}", response_model=BeneficiaryRead)
def update_beneficiary(
    beneficiary_id: UUID,
    payload: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    """Partial update. Only provided fields change."""
    return orchestrator.update_beneficiary(actor, beneficiary_id, payload)


@router.delete("/{beneficiary_id}", response_model=BeneficiaryRead)
def archive_beneficiary(
    beneficiary_id: UUID,
    actor: Actor | None = Depends(get_current_actor),
    orchestrator: MutationOrchestrator = Depends(get_orchestrator),
):
    """Soft delete: the beneficiary is archived, never removed."""
    return orchestrator.archive_beneficiary(actor, beneficiary_id)
