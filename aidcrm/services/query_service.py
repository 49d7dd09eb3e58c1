"""Read operations - single-record gets and scoped, paginated lists.

Reads never write and never produce audit entries. Lists apply the
actor's scope inside the store, so ``total`` only counts visible rows.
"""

from uuid import UUID

from aidcrm.core.errors import NotFoundError
from aidcrm.core.policies import Action, Deny, check_capability, list_scope, require
from aidcrm.db.store import EntityStore, Scope
from aidcrm.schemas.audit import AuditFilters, AuditLogEntry
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryFilters, BeneficiaryRead
from aidcrm.schemas.case import CaseFilters, CaseRead
from aidcrm.schemas.service import ServiceFilters, ServiceRead
from aidcrm.utils.pagination import Page, PaginationParams


def resolve_scope(actor: Actor | None, action: Action) -> Scope:
    """Scope for a list-style action, raising Unauthorized/Forbidden on deny."""
    decision = check_capability(actor, action)
    if isinstance(decision, Deny):
        raise decision.to_error()
    return list_scope(decision)


# =============================================================================
# Beneficiaries
# =============================================================================

def get_beneficiary(store: EntityStore, actor: Actor | None, beneficiary_id: UUID) -> BeneficiaryRead:
    resolve_scope(actor, Action.READ_BENEFICIARY)
    beneficiary = store.get_beneficiary(beneficiary_id)
    if beneficiary is None:
        raise NotFoundError("Beneficiary")
    require(actor, Action.READ_BENEFICIARY, beneficiary)
    return beneficiary


def list_beneficiaries(
    store: EntityStore,
    actor: Actor | None,
    filters: BeneficiaryFilters | None = None,
    params: PaginationParams | None = None,
) -> Page[BeneficiaryRead]:
    scope = resolve_scope(actor, Action.LIST_BENEFICIARIES)
    params = params or PaginationParams()
    items, total = store.list_beneficiaries(filters or BeneficiaryFilters(), scope, params)
    return Page[BeneficiaryRead].create(items, total, params)


# =============================================================================
# Cases
# =============================================================================

def get_case(store: EntityStore, actor: Actor | None, case_id: UUID) -> CaseRead:
    resolve_scope(actor, Action.READ_CASE)
    case = store.get_case(case_id)
    if case is None:
        raise NotFoundError("Case")
    require(actor, Action.READ_CASE, case)
    return case


def list_cases(
    store: EntityStore,
    actor: Actor | None,
    filters: CaseFilters | None = None,
    params: PaginationParams | None = None,
) -> Page[CaseRead]:
    scope = resolve_scope(actor, Action.LIST_CASES)
    params = params or PaginationParams()
    items, total = store.list_cases(filters or CaseFilters(), scope, params)
    return Page[CaseRead].create(items, total, params)


# =============================================================================
# Services
# =============================================================================

def get_service(store: EntityStore, actor: Actor | None, service_id: UUID) -> ServiceRead:
    resolve_scope(actor, Action.READ_SERVICE)
    service = store.get_service(service_id)
    if service is None:
        raise NotFoundError("Service")
    require(actor, Action.READ_SERVICE, service)
    return service


def list_services(
    store: EntityStore,
    actor: Actor | None,
    filters: ServiceFilters | None = None,
    params: PaginationParams | None = None,
) -> Page[ServiceRead]:
    scope = resolve_scope(actor, Action.LIST_SERVICES)
    params = params or PaginationParams()
    items, total = store.list_services(filters or ServiceFilters(), scope, params)
    return Page[ServiceRead].create(items, total, params)


# =============================================================================
# Audit trail
# =============================================================================

def list_audit_entries(
    store: EntityStore,
    actor: Actor | None,
    filters: AuditFilters | None = None,
    params: PaginationParams | None = None,
) -> Page[AuditLogEntry]:
    """Newest first. Admin-only; there is no scoped audit view."""
    resolve_scope(actor, Action.LIST_AUDIT_LOG)
    params = params or PaginationParams()
    items, total = store.list_audit_entries(filters or AuditFilters(), params)
    return Page[AuditLogEntry].create(items, total, params)
