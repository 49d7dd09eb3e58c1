"""Audit log schemas.

``details`` is a closed set of payload variants, one per audit action,
discriminated by the ``action`` field. Compliance tooling reads these, so
each variant carries only the fields relevant to its action.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from aidcrm.db.enums import AuditAction, BeneficiaryStatus, EntityKind, ServiceType


class FieldChange(BaseModel):
    """Before/after pair for one changed field (JSON-safe values)."""
    before: Any = None
    after: Any = None


class BeneficiaryCreatedDetails(BaseModel):
    action: Literal[AuditAction.BENEFICIARY_CREATED] = AuditAction.BENEFICIARY_CREATED
    beneficiary_id: UUID


class BeneficiaryUpdatedDetails(BaseModel):
    action: Literal[AuditAction.BENEFICIARY_UPDATED] = AuditAction.BENEFICIARY_UPDATED
    beneficiary_id: UUID
    changes: dict[str, FieldChange]


class BeneficiaryArchivedDetails(BaseModel):
    action: Literal[AuditAction.BENEFICIARY_ARCHIVED] = AuditAction.BENEFICIARY_ARCHIVED
    beneficiary_id: UUID
    previous_status: BeneficiaryStatus


class CaseCreatedDetails(BaseModel):
    action: Literal[AuditAction.CASE_CREATED] = AuditAction.CASE_CREATED
    case_id: UUID
    beneficiary_id: UUID


class CaseUpdatedDetails(BaseModel):
    action: Literal[AuditAction.CASE_UPDATED] = AuditAction.CASE_UPDATED
    case_id: UUID
    changes: dict[str, FieldChange]


class CaseDeletedDetails(BaseModel):
    action: Literal[AuditAction.CASE_DELETED] = AuditAction.CASE_DELETED
    case_id: UUID
    beneficiary_id: UUID
    deleted_service_ids: list[UUID] = Field(default_factory=list)


class ServiceCreatedDetails(BaseModel):
    action: Literal[AuditAction.SERVICE_CREATED] = AuditAction.SERVICE_CREATED
    service_id: UUID
    beneficiary_id: UUID
    case_id: UUID | None = None
    type: ServiceType


class ServiceUpdatedDetails(BaseModel):
    action: Literal[AuditAction.SERVICE_UPDATED] = AuditAction.SERVICE_UPDATED
    service_id: UUID
    changes: dict[str, FieldChange]


class ServiceDeletedDetails(BaseModel):
    action: Literal[AuditAction.SERVICE_DELETED] = AuditAction.SERVICE_DELETED
    service_id: UUID
    beneficiary_id: UUID


AuditDetails = Annotated[
    Union[
        BeneficiaryCreatedDetails,
        BeneficiaryUpdatedDetails,
        BeneficiaryArchivedDetails,
        CaseCreatedDetails,
        CaseUpdatedDetails,
        CaseDeletedDetails,
        ServiceCreatedDetails,
        ServiceUpdatedDetails,
        ServiceDeletedDetails,
    ],
    Field(discriminator="action"),
]

audit_details_adapter: TypeAdapter[AuditDetails] = TypeAdapter(AuditDetails)


class AuditLogEntry(BaseModel):
    """Immutable audit record. ``id`` is assigned by the store on append."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int | None = None
    action: AuditAction
    user_id: UUID
    timestamp: datetime
    details: AuditDetails
    prev_hash: str | None = None
    entry_hash: str


class AuditFilters(BaseModel):
    """List filters for the audit trail."""
    action: AuditAction | None = None
    user_id: UUID | None = None
    entity_id: UUID | None = None


_TARGET_FIELDS: dict[AuditAction, tuple[EntityKind, str]] = {
    AuditAction.BENEFICIARY_CREATED: (EntityKind.BENEFICIARY, "beneficiary_id"),
    AuditAction.BENEFICIARY_UPDATED: (EntityKind.BENEFICIARY, "beneficiary_id"),
    AuditAction.BENEFICIARY_ARCHIVED: (EntityKind.BENEFICIARY, "beneficiary_id"),
    AuditAction.CASE_CREATED: (EntityKind.CASE, "case_id"),
    AuditAction.CASE_UPDATED: (EntityKind.CASE, "case_id"),
    AuditAction.CASE_DELETED: (EntityKind.CASE, "case_id"),
    AuditAction.SERVICE_CREATED: (EntityKind.SERVICE, "service_id"),
    AuditAction.SERVICE_UPDATED: (EntityKind.SERVICE, "service_id"),
    AuditAction.SERVICE_DELETED: (EntityKind.SERVICE, "service_id"),
}


def audit_target(details: AuditDetails) -> tuple[EntityKind, UUID]:
    """Entity kind and id an audit payload is about."""
    kind, field = _TARGET_FIELDS[details.action]
    return kind, getattr(details, field)
