"""Pydantic schemas for cases."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from aidcrm.db.enums import CaseStatus, CaseType, Priority
from aidcrm.schemas.common import InputSchema, PartialInputSchema


class CaseCreate(InputSchema):
    """Request to open a case for a beneficiary."""
    beneficiary_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    type: CaseType
    priority: Priority = Priority.MEDIUM
    status: CaseStatus = CaseStatus.OPEN
    assigned_to_ids: list[UUID] = Field(default_factory=list)


class CaseUpdate(PartialInputSchema):
    """Request to update a case (partial). The beneficiary link is immutable."""

    required_fields = frozenset({"title", "description", "type", "priority", "status", "assigned_to_ids"})

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    type: CaseType | None = None
    priority: Priority | None = None
    status: CaseStatus | None = None
    assigned_to_ids: list[UUID] | None = None


class CaseRead(BaseModel):
    """Case record as handed out by the entity store."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    beneficiary_id: UUID
    title: str
    description: str
    type: CaseType
    priority: Priority
    status: CaseStatus
    created_by_id: UUID
    assigned_to_ids: list[UUID] = Field(default_factory=list)
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def stakeholder_ids(self) -> frozenset[UUID]:
        """Creator plus every assignee."""
        return frozenset({self.created_by_id, *self.assigned_to_ids})


class CaseFilters(BaseModel):
    """List filters for cases."""
    status: CaseStatus | None = None
    statuses: list[CaseStatus] | None = None
    type: CaseType | None = None
    beneficiary_id: UUID | None = None
