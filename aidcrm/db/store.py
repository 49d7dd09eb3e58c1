"""Entity Store boundary.

Invariants:
    - The store exclusively owns persisted rows; callers only receive
      detached records and mutate through explicit store calls
    - Uniqueness (``beneficiaries.id_number``) is enforced by the store
      itself and reported as UniqueViolationError, never by caller locks
    - List/count calls conjoin the caller's filters with a Scope before
      counting or paginating, so totals reflect only visible rows
    - Everything written inside ``transaction()`` commits or rolls back
      together

Implementations: SqlEntityStore (SQLAlchemy) and InMemoryEntityStore.
"""

from dataclasses import dataclass
from typing import ContextManager, Iterable, Protocol, Union
from uuid import UUID

from aidcrm.schemas.audit import AuditFilters, AuditLogEntry
from aidcrm.schemas.auth import UserRead
from aidcrm.schemas.beneficiary import BeneficiaryFilters, BeneficiaryRead
from aidcrm.schemas.case import CaseFilters, CaseRead
from aidcrm.schemas.service import ServiceFilters, ServiceRead
from aidcrm.utils.pagination import PaginationParams


@dataclass(frozen=True)
class Unrestricted:
    """Scope that admits every row."""


@dataclass(frozen=True)
class OwnedBy:
    """Scope that admits rows where ``user_id`` is creator or assignee."""
    user_id: UUID


Scope = Union[Unrestricted, OwnedBy]


class EntityStore(Protocol):
    """Contract for beneficiary/case/service/audit persistence."""

    def transaction(self) -> ContextManager[None]: ...

    # Users
    def get_user(self, user_id: UUID) -> UserRead | None: ...
    def get_user_by_email(self, email: str) -> UserRead | None: ...
    def add_user(self, user: UserRead) -> UserRead: ...
    def existing_user_ids(self, user_ids: Iterable[UUID]) -> set[UUID]: ...

    # Beneficiaries
    def get_beneficiary(self, beneficiary_id: UUID) -> BeneficiaryRead | None: ...
    def find_beneficiary_by_id_number(self, id_number: str) -> BeneficiaryRead | None: ...
    def add_beneficiary(self, record: BeneficiaryRead) -> BeneficiaryRead: ...
    def update_beneficiary(self, beneficiary_id: UUID, changes: dict) -> BeneficiaryRead: ...
    def list_beneficiaries(
        self, filters: BeneficiaryFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[BeneficiaryRead], int]: ...
    def count_beneficiaries(self, filters: BeneficiaryFilters, scope: Scope) -> int: ...

    # Cases
    def get_case(self, case_id: UUID) -> CaseRead | None: ...
    def add_case(self, record: CaseRead) -> CaseRead: ...
    def update_case(self, case_id: UUID, changes: dict) -> CaseRead: ...
    def delete_case(self, case_id: UUID) -> list[UUID]: ...
    def list_cases(
        self, filters: CaseFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[CaseRead], int]: ...
    def count_cases(self, filters: CaseFilters, scope: Scope) -> int: ...

    # Services
    def get_service(self, service_id: UUID) -> ServiceRead | None: ...
    def add_service(self, record: ServiceRead) -> ServiceRead: ...
    def update_service(self, service_id: UUID, changes: dict) -> ServiceRead: ...
    def delete_service(self, service_id: UUID) -> None: ...
    def list_services(
        self, filters: ServiceFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[ServiceRead], int]: ...
    def count_services(self, filters: ServiceFilters, scope: Scope) -> int: ...

    # Audit trail (append-only)
    def last_audit_hash(self) -> str | None: ...
    def append_audit(self, entry: AuditLogEntry) -> AuditLogEntry: ...
    def list_audit_entries(
        self, filters: AuditFilters, params: PaginationParams,
    ) -> tuple[list[AuditLogEntry], int]: ...
    def all_audit_entries(self) -> list[AuditLogEntry]: ...
