"""In-memory implementation of the entity store.

Used by the test-suite and by tooling that needs the core without a
database. Behaves like the SQL store where it matters to callers:

- records handed out are copies; stored rows change only through store calls
- ``id_number`` and user ``email`` uniqueness is checked and written under
  one lock, so two racing creates cannot both succeed
- ``transaction()`` serializes writers and restores the pre-transaction
  state if the block raises
"""

import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, TypeVar
from uuid import UUID

from pydantic import BaseModel

from aidcrm.core.errors import UniqueViolationError
from aidcrm.db.store import OwnedBy, Scope
from aidcrm.schemas.audit import AuditFilters, AuditLogEntry, audit_target
from aidcrm.schemas.auth import UserRead
from aidcrm.schemas.beneficiary import BeneficiaryFilters, BeneficiaryRead
from aidcrm.schemas.case import CaseFilters, CaseRead
from aidcrm.schemas.service import ServiceFilters, ServiceRead
from aidcrm.utils.pagination import PaginationParams

R = TypeVar("R", bound=BaseModel)


def _contains(value: str | None, term: str) -> bool:
    return value is not None and term in value.lower()


def _page(rows: list[R], params: PaginationParams) -> tuple[list[R], int]:
    window = rows[params.offset:params.offset + params.limit]
    return [row.model_copy(deep=True) for row in window], len(rows)


class InMemoryEntityStore:
    """Entity store holding records in dictionaries."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.users: dict[UUID, UserRead] = {}
        self.beneficiaries: dict[UUID, BeneficiaryRead] = {}
        self.cases: dict[UUID, CaseRead] = {}
        self.services: dict[UUID, ServiceRead] = {}
        self.audit_log: list[AuditLogEntry] = []

    # Rows are replaced, never mutated in place, so a shallow copy of each
    # table is a complete snapshot.
    def _snapshot(self) -> tuple:
        return (
            dict(self.users),
            dict(self.beneficiaries),
            dict(self.cases),
            dict(self.services),
            list(self.audit_log),
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self.users,
            self.beneficiaries,
            self.cases,
            self.services,
            self.audit_log,
        ) = snapshot

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise

    # =========================================================================
    # Users
    # =========================================================================

    def get_user(self, user_id: UUID) -> UserRead | None:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> UserRead | None:
        wanted = email.lower()
        for user in self.users.values():
            if user.email.lower() == wanted:
                return user.model_copy()
        return None

    def add_user(self, user: UserRead) -> UserRead:
        with self._lock:
            if self.get_user_by_email(user.email) is not None:
                raise UniqueViolationError("email")
            self.users[user.id] = user.model_copy()
        return user.model_copy()

    def existing_user_ids(self, user_ids: Iterable[UUID]) -> set[UUID]:
        return {uid for uid in user_ids if uid in self.users}

    # =========================================================================
    # Beneficiaries
    # =========================================================================

    def get_beneficiary(self, beneficiary_id: UUID) -> BeneficiaryRead | None:
        row = self.beneficiaries.get(beneficiary_id)
        return row.model_copy(deep=True) if row else None

    def find_beneficiary_by_id_number(self, id_number: str) -> BeneficiaryRead | None:
        for row in self.beneficiaries.values():
            if row.id_number == id_number:
                return row.model_copy(deep=True)
        return None

    def _check_id_number(self, id_number: str | None, own_id: UUID) -> None:
        if id_number is None:
            return
        for row in self.beneficiaries.values():
            if row.id_number == id_number and row.id != own_id:
                raise UniqueViolationError("id_number")

    def add_beneficiary(self, record: BeneficiaryRead) -> BeneficiaryRead:
        with self._lock:
            self._check_id_number(record.id_number, record.id)
            self.beneficiaries[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    def update_beneficiary(self, beneficiary_id: UUID, changes: dict) -> BeneficiaryRead:
        with self._lock:
            current = self.beneficiaries.get(beneficiary_id)
            if current is None:
                raise LookupError(f"beneficiary {beneficiary_id} vanished mid-operation")
            if "id_number" in changes:
                self._check_id_number(changes["id_number"], beneficiary_id)
            updated = current.model_copy(update=changes, deep=True)
            self.beneficiaries[beneficiary_id] = updated
        return updated.model_copy(deep=True)

    def _matching_beneficiaries(
        self, filters: BeneficiaryFilters, scope: Scope,
    ) -> list[BeneficiaryRead]:
        term = filters.search.strip().lower() if filters.search else None

        def keep(row: BeneficiaryRead) -> bool:
            if term and not any(
                _contains(value, term)
                for value in (row.first_name, row.last_name, row.phone, row.email, row.id_number)
            ):
                return False
            if filters.category and row.category != filters.category:
                return False
            if filters.status and row.status != filters.status:
                return False
            if filters.created_after and row.created_at < filters.created_after:
                return False
            if isinstance(scope, OwnedBy) and scope.user_id not in row.stakeholder_ids:
                return False
            return True

        return [row for row in self.beneficiaries.values() if keep(row)]

    def list_beneficiaries(
        self, filters: BeneficiaryFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[BeneficiaryRead], int]:
        rows = sorted(
            self._matching_beneficiaries(filters, scope),
            key=lambda r: (r.created_at, str(r.id)),
            reverse=True,
        )
        return _page(rows, params)

    def count_beneficiaries(self, filters: BeneficiaryFilters, scope: Scope) -> int:
        return len(self._matching_beneficiaries(filters, scope))

    # =========================================================================
    # Cases
    # =========================================================================

    def get_case(self, case_id: UUID) -> CaseRead | None:
        row = self.cases.get(case_id)
        return row.model_copy(deep=True) if row else None

    def add_case(self, record: CaseRead) -> CaseRead:
        stored = record.model_copy(
            update={"assigned_to_ids": sorted(set(record.assigned_to_ids), key=str)}, deep=True
        )
        with self._lock:
            self.cases[stored.id] = stored
        return stored.model_copy(deep=True)

    def update_case(self, case_id: UUID, changes: dict) -> CaseRead:
        changes = dict(changes)
        if "assigned_to_ids" in changes:
            changes["assigned_to_ids"] = sorted(set(changes["assigned_to_ids"]), key=str)
        with self._lock:
            current = self.cases.get(case_id)
            if current is None:
                raise LookupError(f"case {case_id} vanished mid-operation")
            updated = current.model_copy(update=changes, deep=True)
            self.cases[case_id] = updated
        return updated.model_copy(deep=True)

    def delete_case(self, case_id: UUID) -> list[UUID]:
        with self._lock:
            if case_id not in self.cases:
                raise LookupError(f"case {case_id} vanished mid-operation")
            service_ids = [s.id for s in self.services.values() if s.case_id == case_id]
            for service_id in service_ids:
                del self.services[service_id]
            del self.cases[case_id]
        return service_ids

    def _matching_cases(self, filters: CaseFilters, scope: Scope) -> list[CaseRead]:
        def keep(row: CaseRead) -> bool:
            if filters.status and row.status != filters.status:
                return False
            if filters.statuses and row.status not in filters.statuses:
                return False
            if filters.type and row.type != filters.type:
                return False
            if filters.beneficiary_id and row.beneficiary_id != filters.beneficiary_id:
                return False
            if isinstance(scope, OwnedBy) and scope.user_id not in row.stakeholder_ids:
                return False
            return True

        return [row for row in self.cases.values() if keep(row)]

    def list_cases(
        self, filters: CaseFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[CaseRead], int]:
        rows = sorted(
            self._matching_cases(filters, scope),
            key=lambda r: (r.created_at, str(r.id)),
            reverse=True,
        )
        return _page(rows, params)

    def count_cases(self, filters: CaseFilters, scope: Scope) -> int:
        return len(self._matching_cases(filters, scope))

    # =========================================================================
    # Services
    # =========================================================================

    def get_service(self, service_id: UUID) -> ServiceRead | None:
        row = self.services.get(service_id)
        return row.model_copy(deep=True) if row else None

    def add_service(self, record: ServiceRead) -> ServiceRead:
        with self._lock:
            self.services[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    def update_service(self, service_id: UUID, changes: dict) -> ServiceRead:
        with self._lock:
            current = self.services.get(service_id)
            if current is None:
                raise LookupError(f"service {service_id} vanished mid-operation")
            updated = current.model_copy(update=changes, deep=True)
            self.services[service_id] = updated
        return updated.model_copy(deep=True)

    def delete_service(self, service_id: UUID) -> None:
        with self._lock:
            if self.services.pop(service_id, None) is None:
                raise LookupError(f"service {service_id} vanished mid-operation")

    def _matching_services(self, filters: ServiceFilters, scope: Scope) -> list[ServiceRead]:
        def keep(row: ServiceRead) -> bool:
            if filters.type and row.type != filters.type:
                return False
            if filters.beneficiary_id and row.beneficiary_id != filters.beneficiary_id:
                return False
            if filters.case_id and row.case_id != filters.case_id:
                return False
            if filters.start_date and row.date < filters.start_date:
                return False
            if filters.end_date and row.date > filters.end_date:
                return False
            if isinstance(scope, OwnedBy) and scope.user_id not in row.stakeholder_ids:
                return False
            return True

        return [row for row in self.services.values() if keep(row)]

    def list_services(
        self, filters: ServiceFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[ServiceRead], int]:
        rows = sorted(
            self._matching_services(filters, scope),
            key=lambda r: (r.date, r.created_at, str(r.id)),
            reverse=True,
        )
        return _page(rows, params)

    def count_services(self, filters: ServiceFilters, scope: Scope) -> int:
        return len(self._matching_services(filters, scope))

    # =========================================================================
    # Audit trail
    # =========================================================================

    def last_audit_hash(self) -> str | None:
        return self.audit_log[-1].entry_hash if self.audit_log else None

    def append_audit(self, entry: AuditLogEntry) -> AuditLogEntry:
        with self._lock:
            stored = entry.model_copy(update={"id": len(self.audit_log) + 1})
            self.audit_log.append(stored)
        return stored

    def list_audit_entries(
        self, filters: AuditFilters, params: PaginationParams,
    ) -> tuple[list[AuditLogEntry], int]:
        predicates: list[Callable[[AuditLogEntry], bool]] = []
        if filters.action:
            predicates.append(lambda e: e.action == filters.action)
        if filters.user_id:
            predicates.append(lambda e: e.user_id == filters.user_id)
        if filters.entity_id:
            predicates.append(lambda e: audit_target(e.details)[1] == filters.entity_id)
        rows = [e for e in reversed(self.audit_log) if all(p(e) for p in predicates)]
        return _page(rows, params)

    def all_audit_entries(self) -> list[AuditLogEntry]:
        return list(self.audit_log)
