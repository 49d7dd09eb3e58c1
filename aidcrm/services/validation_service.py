"""Validation service - field and cross-entity rules for proposed mutations.

Runs after authorization and before any write. Field rules live in the
pydantic input schemas; this module adds the rules that need the existing
record or the store (status transitions, uniqueness, references).
"""

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import ValidationError

from aidcrm.core.errors import FieldError
from aidcrm.db.enums import BeneficiaryStatus, EntityKind
from aidcrm.db.store import EntityStore
from aidcrm.schemas.beneficiary import BeneficiaryCreate, BeneficiaryRead, BeneficiaryUpdate
from aidcrm.schemas.case import CaseCreate, CaseUpdate
from aidcrm.schemas.common import InputSchema, PartialInputSchema
from aidcrm.schemas.service import ServiceCreate, ServiceUpdate

CREATE_SCHEMAS: dict[EntityKind, type[InputSchema]] = {
    EntityKind.BENEFICIARY: BeneficiaryCreate,
    EntityKind.CASE: CaseCreate,
    EntityKind.SERVICE: ServiceCreate,
}

UPDATE_SCHEMAS: dict[EntityKind, type[PartialInputSchema]] = {
    EntityKind.BENEFICIARY: BeneficiaryUpdate,
    EntityKind.CASE: CaseUpdate,
    EntityKind.SERVICE: ServiceUpdate,
}

# Fields fixed at creation that an update payload may name explicitly
IMMUTABLE_ON_UPDATE: dict[EntityKind, frozenset[str]] = {
    EntityKind.BENEFICIARY: frozenset(),
    EntityKind.CASE: frozenset({"beneficiary_id"}),
    EntityKind.SERVICE: frozenset(),
}

_TERMINAL_FROM_DECEASED = frozenset({BeneficiaryStatus.ACTIVE, BeneficiaryStatus.INACTIVE})


@dataclass(frozen=True)
class Valid:
    """Normalized fields ready to persist (only provided fields for updates)."""
    fields: dict[str, Any]


@dataclass(frozen=True)
class Invalid:
    errors: list[FieldError] = field(default_factory=list)


ValidationResult = Union[Valid, Invalid]


def _field_errors(exc: ValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        name = ".".join(str(part) for part in err["loc"]) or "__all__"
        errors.append(FieldError(field=name, message=err["msg"], code=err["type"]))
    return errors


def _status_errors(
    fields: dict[str, Any], existing: BeneficiaryRead | None,
) -> list[FieldError]:
    if "status" not in fields:
        return []
    new_status = fields["status"]
    current = existing.status if existing else None
    if new_status == current:
        return []
    if new_status == BeneficiaryStatus.ARCHIVED:
        return [FieldError("status", "Use the archive operation to archive a beneficiary", "invalid_transition")]
    if current == BeneficiaryStatus.ARCHIVED:
        return [FieldError("status", "An archived beneficiary cannot change status", "invalid_transition")]
    if current == BeneficiaryStatus.DECEASED and new_status in _TERMINAL_FROM_DECEASED:
        return [FieldError("status", "A deceased beneficiary cannot be reactivated", "invalid_transition")]
    return []


def _check_users(store: EntityStore, name: str, user_ids: list) -> list[FieldError]:
    wanted = [uid for uid in user_ids if uid is not None]
    if not wanted:
        return []
    missing = set(wanted) - store.existing_user_ids(wanted)
    if missing:
        return [FieldError(name, "Assigned user does not exist", "not_found")]
    return []


def _cross_entity_errors(
    store: EntityStore, kind: EntityKind, fields: dict[str, Any], existing: Any | None,
) -> list[FieldError]:
    errors: list[FieldError] = []

    if kind == EntityKind.BENEFICIARY:
        id_number = fields.get("id_number")
        if id_number is not None:
            holder = store.find_beneficiary_by_id_number(id_number)
            if holder is not None and (existing is None or holder.id != existing.id):
                errors.append(FieldError("id_number", "A beneficiary with this ID number already exists", "unique"))
        if "assigned_to_id" in fields:
            errors += _check_users(store, "assigned_to_id", [fields["assigned_to_id"]])

    elif kind == EntityKind.CASE:
        if fields.get("beneficiary_id") is not None:
            if store.get_beneficiary(fields["beneficiary_id"]) is None:
                errors.append(FieldError("beneficiary_id", "Beneficiary not found", "not_found"))
        if fields.get("assigned_to_ids"):
            errors += _check_users(store, "assigned_to_ids", fields["assigned_to_ids"])

    elif kind == EntityKind.SERVICE:
        if fields.get("beneficiary_id") is not None:
            if store.get_beneficiary(fields["beneficiary_id"]) is None:
                errors.append(FieldError("beneficiary_id", "Beneficiary not found", "not_found"))
        if fields.get("case_id") is not None:
            if store.get_case(fields["case_id"]) is None:
                errors.append(FieldError("case_id", "Case not found", "not_found"))

    return errors


def validate(
    store: EntityStore,
    kind: EntityKind,
    proposed: dict[str, Any],
    existing: Any | None = None,
) -> ValidationResult:
    """
    Validate a proposed create (``existing`` is None) or partial update.

    Field-level failures are collected together and returned before any
    store lookup runs. Cross-entity checks only look at fields present in
    the payload.
    """
    errors: list[FieldError] = []
    payload = dict(proposed)

    if existing is None:
        schema: type[InputSchema] = CREATE_SCHEMAS[kind]
    else:
        schema = UPDATE_SCHEMAS[kind]
        for name in sorted(IMMUTABLE_ON_UPDATE[kind] & payload.keys()):
            payload.pop(name)
            errors.append(FieldError(name, "This field cannot be changed", "immutable"))

    try:
        parsed = schema.model_validate(payload)
    except ValidationError as exc:
        return Invalid(errors + _field_errors(exc))

    if isinstance(parsed, PartialInputSchema):
        fields = parsed.model_dump(exclude_unset=True)
        errors += [
            FieldError(name, "This field cannot be cleared", "required")
            for name in parsed.cleared_required_fields()
        ]
    else:
        fields = parsed.model_dump()

    if kind == EntityKind.BENEFICIARY:
        errors += _status_errors(fields, existing)

    if errors:
        return Invalid(errors)

    errors = _cross_entity_errors(store, kind, fields, existing)
    if errors:
        return Invalid(errors)
    return Valid(fields)
