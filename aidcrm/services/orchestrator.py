"""Mutation orchestrator - the single path every create/update/archive/delete takes.

Each operation moves through

    RECEIVED -> AUTHORIZED -> VALIDATED -> PERSISTED -> AUDITED

or stops in FAILED with the error kind that stopped it. The store write and
the audit entry run inside one ``store.transaction()``, so a rejected or
failed operation leaves no row change and no audit entry behind.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterator, TypeVar
from uuid import UUID, uuid4

from pydantic_core import to_jsonable_python

from aidcrm.core.errors import (
    ConflictError,
    CoreError,
    FieldError,
    InternalError,
    NotFoundError,
    UniqueViolationError,
    ValidationFailedError,
)
from aidcrm.core.policies import Action, Deny, Target, check_capability, require
from aidcrm.core.structured_logging import build_log_context
from aidcrm.db.enums import AuditAction, BeneficiaryStatus, CaseStatus, EntityKind
from aidcrm.db.store import EntityStore
from aidcrm.schemas.audit import (
    BeneficiaryArchivedDetails,
    BeneficiaryCreatedDetails,
    BeneficiaryUpdatedDetails,
    CaseCreatedDetails,
    CaseDeletedDetails,
    CaseUpdatedDetails,
    FieldChange,
    ServiceCreatedDetails,
    ServiceDeletedDetails,
    ServiceUpdatedDetails,
)
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryRead
from aidcrm.schemas.case import CaseRead
from aidcrm.schemas.service import ServiceRead
from aidcrm.services import audit_service
from aidcrm.services.validation_service import Invalid, validate
from aidcrm.utils.datetime_utils import Clock, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationState(str, Enum):
    RECEIVED = "RECEIVED"
    AUTHORIZED = "AUTHORIZED"
    VALIDATED = "VALIDATED"
    PERSISTED = "PERSISTED"
    AUDITED = "AUDITED"
    FAILED = "FAILED"


class _Trace:
    """Logs state transitions of one operation (ids only)."""

    def __init__(self, actor: Actor | None, action: Action, entity_id: UUID | None = None):
        self.actor_id = actor.user_id if actor else None
        self.action = action
        self.entity_id = entity_id
        self.state = MutationState.RECEIVED
        self._log()

    def _log(self, error_kind: str | None = None) -> None:
        logger.debug(
            "mutation_state",
            extra=build_log_context(
                user_id=self.actor_id,
                action=self.action.value,
                entity_id=self.entity_id,
                state=self.state.value,
                error_kind=error_kind,
            ),
        )

    def advance(self, state: MutationState, entity_id: UUID | None = None) -> None:
        if entity_id is not None:
            self.entity_id = entity_id
        self.state = state
        self._log()

    def fail(self, error: CoreError) -> None:
        self.state = MutationState.FAILED
        self._log(error_kind=error.kind.value)


def _diff(before: Any, after: Any, fields: dict[str, Any]) -> dict[str, FieldChange]:
    """Field-level diff restricted to fields whose value actually changed."""
    changes: dict[str, FieldChange] = {}
    for name in fields:
        old = to_jsonable_python(getattr(before, name))
        new = to_jsonable_python(getattr(after, name))
        if old != new:
            changes[name] = FieldChange(before=old, after=new)
    return changes


def _raise_invalid(result: Invalid) -> None:
    if all(e.code == "unique" for e in result.errors):
        raise ConflictError(result.errors)
    raise ValidationFailedError(result.errors)


class MutationOrchestrator:
    """Runs authorize -> validate -> persist -> audit for each mutation."""

    def __init__(self, store: EntityStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    # =========================================================================
    # Pipeline steps
    # =========================================================================

    @contextmanager
    def _operation(self, actor: Actor | None, action: Action, entity_id: UUID | None = None) -> Iterator[_Trace]:
        trace = _Trace(actor, action, entity_id)
        try:
            yield trace
        except CoreError as exc:
            trace.fail(exc)
            raise

    def _precheck(self, actor: Actor | None, action: Action) -> None:
        decision = check_capability(actor, action)
        if isinstance(decision, Deny):
            raise decision.to_error()

    def _load(self, getter: Callable[[UUID], T | None], entity_id: UUID, label: str) -> T:
        target = getter(entity_id)
        if target is None:
            raise NotFoundError(label)
        return target

    def _authorize(self, trace: _Trace, actor: Actor | None, action: Action, target: Target | None = None) -> None:
        require(actor, action, target)
        trace.advance(MutationState.AUTHORIZED)

    def _validate(
        self, trace: _Trace, kind: EntityKind, payload: dict[str, Any], existing: Any | None = None,
    ) -> dict[str, Any]:
        result = validate(self.store, kind, payload, existing)
        if isinstance(result, Invalid):
            _raise_invalid(result)
        trace.advance(MutationState.VALIDATED)
        return result.fields

    def _commit(self, trace: _Trace, work: Callable[[], T]) -> T:
        """Run ``work`` (store write + audit) as one transaction."""
        try:
            with self.store.transaction():
                return work()
        except CoreError:
            raise
        except UniqueViolationError as exc:
            raise ConflictError(
                [FieldError(exc.field, f"A record with this {exc.field} already exists", "unique")]
            ) from exc
        except Exception as exc:
            logger.exception(
                "mutation_failed",
                extra=build_log_context(
                    user_id=trace.actor_id,
                    action=trace.action.value,
                    entity_id=trace.entity_id,
                    state=trace.state.value,
                ),
            )
            raise InternalError() from exc

    def _audit(self, trace: _Trace, actor: Actor, action: AuditAction, details: Any, now) -> None:
        audit_service.record(self.store, action, actor, details, timestamp=now)
        trace.advance(MutationState.AUDITED)

    # =========================================================================
    # Beneficiaries
    # =========================================================================

    def create_beneficiary(self, actor: Actor | None, payload: dict[str, Any]) -> BeneficiaryRead:
        action = Action.CREATE_BENEFICIARY
        with self._operation(actor, action) as trace:
            self._authorize(trace, actor, action)
            fields = self._validate(trace, EntityKind.BENEFICIARY, payload)

            def work() -> BeneficiaryRead:
                now = self.clock()
                record = BeneficiaryRead(
                    id=uuid4(),
                    **{**fields, "assigned_to_id": fields.get("assigned_to_id") or actor.user_id},
                    created_by_id=actor.user_id,
                    created_at=now,
                    updated_at=now,
                )
                created = self.store.add_beneficiary(record)
                trace.advance(MutationState.PERSISTED, created.id)
                self._audit(
                    trace, actor, AuditAction.BENEFICIARY_CREATED,
                    BeneficiaryCreatedDetails(beneficiary_id=created.id), now,
                )
                return created

            return self._commit(trace, work)

    def update_beneficiary(
        self, actor: Actor | None, beneficiary_id: UUID, payload: dict[str, Any],
    ) -> BeneficiaryRead:
        action = Action.UPDATE_BENEFICIARY
        with self._operation(actor, action, beneficiary_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_beneficiary, beneficiary_id, "Beneficiary")
            self._authorize(trace, actor, action, existing)
            fields = self._validate(trace, EntityKind.BENEFICIARY, payload, existing)

            def work() -> BeneficiaryRead:
                now = self.clock()
                updated = self.store.update_beneficiary(beneficiary_id, {**fields, "updated_at": now})
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.BENEFICIARY_UPDATED,
                    BeneficiaryUpdatedDetails(
                        beneficiary_id=beneficiary_id, changes=_diff(existing, updated, fields),
                    ),
                    now,
                )
                return updated

            return self._commit(trace, work)

    def archive_beneficiary(self, actor: Actor | None, beneficiary_id: UUID) -> BeneficiaryRead:
        """Soft delete: set status ARCHIVED and leave every other field alone."""
        action = Action.ARCHIVE_BENEFICIARY
        with self._operation(actor, action, beneficiary_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_beneficiary, beneficiary_id, "Beneficiary")
            self._authorize(trace, actor, action, existing)
            trace.advance(MutationState.VALIDATED)

            def work() -> BeneficiaryRead:
                now = self.clock()
                archived = self.store.update_beneficiary(
                    beneficiary_id, {"status": BeneficiaryStatus.ARCHIVED, "updated_at": now},
                )
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.BENEFICIARY_ARCHIVED,
                    BeneficiaryArchivedDetails(
                        beneficiary_id=beneficiary_id, previous_status=existing.status,
                    ),
                    now,
                )
                return archived

            return self._commit(trace, work)

    # =========================================================================
    # Cases
    # =========================================================================

    def create_case(self, actor: Actor | None, payload: dict[str, Any]) -> CaseRead:
        action = Action.CREATE_CASE
        with self._operation(actor, action) as trace:
            self._authorize(trace, actor, action)
            fields = self._validate(trace, EntityKind.CASE, payload)

            def work() -> CaseRead:
                now = self.clock()
                record = CaseRead(
                    id=uuid4(),
                    **fields,
                    created_by_id=actor.user_id,
                    resolved_at=now if fields["status"] == CaseStatus.RESOLVED else None,
                    created_at=now,
                    updated_at=now,
                )
                created = self.store.add_case(record)
                trace.advance(MutationState.PERSISTED, created.id)
                self._audit(
                    trace, actor, AuditAction.CASE_CREATED,
                    CaseCreatedDetails(case_id=created.id, beneficiary_id=created.beneficiary_id),
                    now,
                )
                return created

            return self._commit(trace, work)

    def update_case(self, actor: Actor | None, case_id: UUID, payload: dict[str, Any]) -> CaseRead:
        action = Action.UPDATE_CASE
        with self._operation(actor, action, case_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_case, case_id, "Case")
            self._authorize(trace, actor, action, existing)
            fields = self._validate(trace, EntityKind.CASE, payload, existing)

            def work() -> CaseRead:
                now = self.clock()
                changes = dict(fields)
                # resolved_at is stamped once, on the first move into RESOLVED
                if changes.get("status") == CaseStatus.RESOLVED and existing.resolved_at is None:
                    changes["resolved_at"] = now
                updated = self.store.update_case(case_id, {**changes, "updated_at": now})
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.CASE_UPDATED,
                    CaseUpdatedDetails(case_id=case_id, changes=_diff(existing, updated, changes)),
                    now,
                )
                return updated

            return self._commit(trace, work)

    def delete_case(self, actor: Actor | None, case_id: UUID) -> None:
        """Hard delete; the case's services go with it."""
        action = Action.DELETE_CASE
        with self._operation(actor, action, case_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_case, case_id, "Case")
            self._authorize(trace, actor, action, existing)
            trace.advance(MutationState.VALIDATED)

            def work() -> None:
                now = self.clock()
                removed = self.store.delete_case(case_id)
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.CASE_DELETED,
                    CaseDeletedDetails(
                        case_id=case_id,
                        beneficiary_id=existing.beneficiary_id,
                        deleted_service_ids=sorted(removed, key=str),
                    ),
                    now,
                )

            self._commit(trace, work)

    # =========================================================================
    # Services
    # =========================================================================

    def create_service(self, actor: Actor | None, payload: dict[str, Any]) -> ServiceRead:
        action = Action.CREATE_SERVICE
        with self._operation(actor, action) as trace:
            self._authorize(trace, actor, action)
            fields = self._validate(trace, EntityKind.SERVICE, payload)

            def work() -> ServiceRead:
                now = self.clock()
                record = ServiceRead(
                    id=uuid4(),
                    **fields,
                    provided_by_id=actor.user_id,
                    created_at=now,
                    updated_at=now,
                )
                created = self.store.add_service(record)
                trace.advance(MutationState.PERSISTED, created.id)
                self._audit(
                    trace, actor, AuditAction.SERVICE_CREATED,
                    ServiceCreatedDetails(
                        service_id=created.id,
                        beneficiary_id=created.beneficiary_id,
                        case_id=created.case_id,
                        type=created.type,
                    ),
                    now,
                )
                return created

            return self._commit(trace, work)

    def update_service(
        self, actor: Actor | None, service_id: UUID, payload: dict[str, Any],
    ) -> ServiceRead:
        action = Action.UPDATE_SERVICE
        with self._operation(actor, action, service_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_service, service_id, "Service")
            self._authorize(trace, actor, action, existing)
            fields = self._validate(trace, EntityKind.SERVICE, payload, existing)

            def work() -> ServiceRead:
                now = self.clock()
                updated = self.store.update_service(service_id, {**fields, "updated_at": now})
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.SERVICE_UPDATED,
                    ServiceUpdatedDetails(service_id=service_id, changes=_diff(existing, updated, fields)),
                    now,
                )
                return updated

            return self._commit(trace, work)

    def delete_service(self, actor: Actor | None, service_id: UUID) -> None:
        action = Action.DELETE_SERVICE
        with self._operation(actor, action, service_id) as trace:
            self._precheck(actor, action)
            existing = self._load(self.store.get_service, service_id, "Service")
            self._authorize(trace, actor, action, existing)
            trace.advance(MutationState.VALIDATED)

            def work() -> None:
                now = self.clock()
                self.store.delete_service(service_id)
                trace.advance(MutationState.PERSISTED)
                self._audit(
                    trace, actor, AuditAction.SERVICE_DELETED,
                    ServiceDeletedDetails(service_id=service_id, beneficiary_id=existing.beneficiary_id),
                    now,
                )

            self._commit(trace, work)
