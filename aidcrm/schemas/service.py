"""Pydantic schemas for service records."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from aidcrm.db.enums import ServiceType
from aidcrm.schemas.common import InputSchema, Money, PartialInputSchema


class ServiceCreate(InputSchema):
    """Request to record a delivered service. provided_by is always the actor."""
    type: ServiceType
    date: dt.date
    description: str | None = Field(None, max_length=5000)
    quantity: int | None = Field(None, gt=0)
    cost: Money = Field(None, gt=0, max_digits=12, decimal_places=2)
    beneficiary_id: UUID
    case_id: UUID | None = None
    location: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=5000)


class ServiceUpdate(PartialInputSchema):
    """Request to update a service record (partial)."""

    required_fields = frozenset({"type", "date", "beneficiary_id"})

    type: ServiceType | None = None
    date: dt.date | None = None
    description: str | None = Field(None, max_length=5000)
    quantity: int | None = Field(None, gt=0)
    cost: Money = Field(None, gt=0, max_digits=12, decimal_places=2)
    beneficiary_id: UUID | None = None
    case_id: UUID | None = None
    location: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=5000)


class ServiceRead(BaseModel):
    """Service record as handed out by the entity store."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: ServiceType
    date: dt.date
    description: str | None = None
    quantity: int | None = None
    cost: Decimal | None = None
    beneficiary_id: UUID
    case_id: UUID | None = None
    provided_by_id: UUID
    location: str | None = None
    notes: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @property
    def stakeholder_ids(self) -> frozenset[UUID]:
        return frozenset({self.provided_by_id})


class ServiceFilters(BaseModel):
    """List filters for service records. Date bounds are inclusive."""
    type: ServiceType | None = None
    beneficiary_id: UUID | None = None
    case_id: UUID | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
