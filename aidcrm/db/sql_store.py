"""SQLAlchemy implementation of the entity store."""

from contextlib import contextmanager
from enum import Enum
from typing import Iterable, Iterator
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from aidcrm.core.errors import UniqueViolationError
from aidcrm.db.models import AuditLog, Beneficiary, Case, Service, User
from aidcrm.db.store import OwnedBy, Scope
from aidcrm.schemas.audit import (
    AuditFilters,
    AuditLogEntry,
    audit_details_adapter,
    audit_target,
)
from aidcrm.schemas.auth import UserRead
from aidcrm.schemas.beneficiary import BeneficiaryFilters, BeneficiaryRead
from aidcrm.schemas.case import CaseFilters, CaseRead
from aidcrm.schemas.service import ServiceFilters, ServiceRead
from aidcrm.utils.pagination import PaginationParams


def _column_values(values: dict) -> dict:
    """Enum members are stored by value."""
    return {key: (v.value if isinstance(v, Enum) else v) for key, v in values.items()}


def _paginate(query: Query, params: PaginationParams) -> tuple[list, int]:
    total = query.count()
    items = query.offset(params.offset).limit(params.limit).all()
    return items, total


class SqlEntityStore:
    """Entity store backed by one SQLAlchemy session (one per request/worker)."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _flush(self, unique_field: str | None = None) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            if unique_field and "unique" in str(exc.orig).lower():
                raise UniqueViolationError(unique_field) from exc
            raise

    # =========================================================================
    # Users
    # =========================================================================

    def get_user(self, user_id: UUID) -> UserRead | None:
        user = self.db.get(User, user_id)
        return UserRead.model_validate(user) if user else None

    def get_user_by_email(self, email: str) -> UserRead | None:
        user = self.db.query(User).filter(func.lower(User.email) == email.lower()).first()
        return UserRead.model_validate(user) if user else None

    def add_user(self, user: UserRead) -> UserRead:
        row = User(**_column_values(user.model_dump()))
        self.db.add(row)
        self._flush(unique_field="email")
        return UserRead.model_validate(row)

    def existing_user_ids(self, user_ids: Iterable[UUID]) -> set[UUID]:
        ids = set(user_ids)
        if not ids:
            return set()
        return {uid for (uid,) in self.db.query(User.id).filter(User.id.in_(ids))}

    # =========================================================================
    # Beneficiaries
    # =========================================================================

    def get_beneficiary(self, beneficiary_id: UUID) -> BeneficiaryRead | None:
        row = self.db.get(Beneficiary, beneficiary_id)
        return BeneficiaryRead.model_validate(row) if row else None

    def find_beneficiary_by_id_number(self, id_number: str) -> BeneficiaryRead | None:
        row = self.db.query(Beneficiary).filter(Beneficiary.id_number == id_number).first()
        return BeneficiaryRead.model_validate(row) if row else None

    def add_beneficiary(self, record: BeneficiaryRead) -> BeneficiaryRead:
        row = Beneficiary(**_column_values(record.model_dump()))
        self.db.add(row)
        self._flush(unique_field="id_number")
        return BeneficiaryRead.model_validate(row)

    def update_beneficiary(self, beneficiary_id: UUID, changes: dict) -> BeneficiaryRead:
        row = self.db.get(Beneficiary, beneficiary_id)
        if row is None:
            raise LookupError(f"beneficiary {beneficiary_id} vanished mid-operation")
        for field, value in _column_values(changes).items():
            setattr(row, field, value)
        self._flush(unique_field="id_number")
        return BeneficiaryRead.model_validate(row)

    def _beneficiary_query(self, filters: BeneficiaryFilters, scope: Scope) -> Query:
        query = self.db.query(Beneficiary)
        if filters.search:
            term = filters.search.strip().lower()
            query = query.filter(or_(
                func.lower(Beneficiary.first_name).contains(term, autoescape=True),
                func.lower(Beneficiary.last_name).contains(term, autoescape=True),
                func.lower(Beneficiary.phone).contains(term, autoescape=True),
                func.lower(Beneficiary.email).contains(term, autoescape=True),
                func.lower(Beneficiary.id_number).contains(term, autoescape=True),
            ))
        if filters.category:
            query = query.filter(Beneficiary.category == filters.category.value)
        if filters.status:
            query = query.filter(Beneficiary.status == filters.status.value)
        if filters.created_after:
            query = query.filter(Beneficiary.created_at >= filters.created_after)
        if isinstance(scope, OwnedBy):
            query = query.filter(or_(
                Beneficiary.created_by_id == scope.user_id,
                Beneficiary.assigned_to_id == scope.user_id,
            ))
        return query

    def list_beneficiaries(
        self, filters: BeneficiaryFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[BeneficiaryRead], int]:
        query = self._beneficiary_query(filters, scope).order_by(
            Beneficiary.created_at.desc(), Beneficiary.id.desc()
        )
        rows, total = _paginate(query, params)
        return [BeneficiaryRead.model_validate(r) for r in rows], total

    def count_beneficiaries(self, filters: BeneficiaryFilters, scope: Scope) -> int:
        return self._beneficiary_query(filters, scope).count()

    # =========================================================================
    # Cases
    # =========================================================================

    def _load_users(self, user_ids: Iterable[UUID]) -> list[User]:
        ids = set(user_ids)
        if not ids:
            return []
        return self.db.query(User).filter(User.id.in_(ids)).all()

    def get_case(self, case_id: UUID) -> CaseRead | None:
        row = self.db.get(Case, case_id)
        return CaseRead.model_validate(row) if row else None

    def add_case(self, record: CaseRead) -> CaseRead:
        values = _column_values(record.model_dump(exclude={"assigned_to_ids"}))
        row = Case(**values)
        row.assignees = self._load_users(record.assigned_to_ids)
        self.db.add(row)
        self._flush()
        return CaseRead.model_validate(row)

    def update_case(self, case_id: UUID, changes: dict) -> CaseRead:
        row = self.db.get(Case, case_id)
        if row is None:
            raise LookupError(f"case {case_id} vanished mid-operation")
        changes = dict(changes)
        if "assigned_to_ids" in changes:
            row.assignees = self._load_users(changes.pop("assigned_to_ids"))
        for field, value in _column_values(changes).items():
            setattr(row, field, value)
        self._flush()
        return CaseRead.model_validate(row)

    def delete_case(self, case_id: UUID) -> list[UUID]:
        row = self.db.get(Case, case_id)
        if row is None:
            raise LookupError(f"case {case_id} vanished mid-operation")
        service_ids = [service.id for service in row.services]
        # cascade="all, delete-orphan" removes the loaded services with the case
        self.db.delete(row)
        self._flush()
        return service_ids

    def _case_query(self, filters: CaseFilters, scope: Scope) -> Query:
        query = self.db.query(Case)
        if filters.status:
            query = query.filter(Case.status == filters.status.value)
        if filters.statuses:
            query = query.filter(Case.status.in_([s.value for s in filters.statuses]))
        if filters.type:
            query = query.filter(Case.type == filters.type.value)
        if filters.beneficiary_id:
            query = query.filter(Case.beneficiary_id == filters.beneficiary_id)
        if isinstance(scope, OwnedBy):
            query = query.filter(or_(
                Case.created_by_id == scope.user_id,
                Case.assignees.any(User.id == scope.user_id),
            ))
        return query

    def list_cases(
        self, filters: CaseFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[CaseRead], int]:
        query = self._case_query(filters, scope).order_by(Case.created_at.desc(), Case.id.desc())
        rows, total = _paginate(query, params)
        return [CaseRead.model_validate(r) for r in rows], total

    def count_cases(self, filters: CaseFilters, scope: Scope) -> int:
        return self._case_query(filters, scope).count()

    # =========================================================================
    # Services
    # =========================================================================

    def get_service(self, service_id: UUID) -> ServiceRead | None:
        row = self.db.get(Service, service_id)
        return ServiceRead.model_validate(row) if row else None

    def add_service(self, record: ServiceRead) -> ServiceRead:
        row = Service(**_column_values(record.model_dump()))
        self.db.add(row)
        self._flush()
        return ServiceRead.model_validate(row)

    def update_service(self, service_id: UUID, changes: dict) -> ServiceRead:
        row = self.db.get(Service, service_id)
        if row is None:
            raise LookupError(f"service {service_id} vanished mid-operation")
        for field, value in _column_values(changes).items():
            setattr(row, field, value)
        self._flush()
        return ServiceRead.model_validate(row)

    def delete_service(self, service_id: UUID) -> None:
        row = self.db.get(Service, service_id)
        if row is None:
            raise LookupError(f"service {service_id} vanished mid-operation")
        self.db.delete(row)
        self._flush()

    def _service_query(self, filters: ServiceFilters, scope: Scope) -> Query:
        query = self.db.query(Service)
        if filters.type:
            query = query.filter(Service.type == filters.type.value)
        if filters.beneficiary_id:
            query = query.filter(Service.beneficiary_id == filters.beneficiary_id)
        if filters.case_id:
            query = query.filter(Service.case_id == filters.case_id)
        if filters.start_date:
            query = query.filter(Service.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Service.date <= filters.end_date)
        if isinstance(scope, OwnedBy):
            query = query.filter(Service.provided_by_id == scope.user_id)
        return query

    def list_services(
        self, filters: ServiceFilters, scope: Scope, params: PaginationParams,
    ) -> tuple[list[ServiceRead], int]:
        query = self._service_query(filters, scope).order_by(
            Service.date.desc(), Service.created_at.desc(), Service.id.desc()
        )
        rows, total = _paginate(query, params)
        return [ServiceRead.model_validate(r) for r in rows], total

    def count_services(self, filters: ServiceFilters, scope: Scope) -> int:
        return self._service_query(filters, scope).count()

    # =========================================================================
    # Audit trail
    # =========================================================================

    @staticmethod
    def _to_entry(row: AuditLog) -> AuditLogEntry:
        return AuditLogEntry(
            id=row.id,
            action=row.action,
            user_id=row.user_id,
            timestamp=row.timestamp,
            details=audit_details_adapter.validate_python(row.details),
            prev_hash=row.prev_hash,
            entry_hash=row.entry_hash,
        )

    def last_audit_hash(self) -> str | None:
        return (
            self.db.query(AuditLog.entry_hash)
            .order_by(AuditLog.id.desc())
            .limit(1)
            .scalar()
        )

    def append_audit(self, entry: AuditLogEntry) -> AuditLogEntry:
        target_type, target_id = audit_target(entry.details)
        row = AuditLog(
            action=entry.action.value,
            user_id=entry.user_id,
            target_type=target_type.value,
            target_id=target_id,
            details=entry.details.model_dump(mode="json"),
            timestamp=entry.timestamp,
            prev_hash=entry.prev_hash,
            entry_hash=entry.entry_hash,
        )
        self.db.add(row)
        self._flush()
        return entry.model_copy(update={"id": row.id})

    def list_audit_entries(
        self, filters: AuditFilters, params: PaginationParams,
    ) -> tuple[list[AuditLogEntry], int]:
        query = self.db.query(AuditLog)
        if filters.action:
            query = query.filter(AuditLog.action == filters.action.value)
        if filters.user_id:
            query = query.filter(AuditLog.user_id == filters.user_id)
        if filters.entity_id:
            query = query.filter(AuditLog.target_id == filters.entity_id)
        rows, total = _paginate(query.order_by(AuditLog.id.desc()), params)
        return [self._to_entry(r) for r in rows], total

    def all_audit_entries(self) -> list[AuditLogEntry]:
        return [self._to_entry(r) for r in self.db.query(AuditLog).order_by(AuditLog.id)]
