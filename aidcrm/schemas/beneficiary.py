"""Pydantic schemas for beneficiaries."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from aidcrm.db.enums import BeneficiaryCategory, BeneficiaryStatus, Gender, Priority
from aidcrm.schemas.common import InputSchema, OptionalEmail, OptionalText, PartialInputSchema, PhoneNumber


class BeneficiaryCreate(InputSchema):
    """Request to register a beneficiary."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    nationality: str | None = Field(None, max_length=100)
    id_number: OptionalText = Field(None, max_length=50)

    phone: PhoneNumber = None
    email: OptionalEmail = None
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postcode: str | None = Field(None, max_length=10)

    emergency_name: str | None = Field(None, max_length=100)
    emergency_phone: PhoneNumber = None
    emergency_relation: str | None = Field(None, max_length=50)

    category: BeneficiaryCategory
    status: BeneficiaryStatus = BeneficiaryStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    notes: str | None = Field(None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    source: str | None = Field(None, max_length=100)

    # Defaults to the creating actor
    assigned_to_id: UUID | None = None


class BeneficiaryUpdate(PartialInputSchema):
    """Request to update a beneficiary (partial). Only provided fields change."""

    required_fields = frozenset({"first_name", "last_name", "category", "status", "priority", "tags"})

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    nationality: str | None = Field(None, max_length=100)
    id_number: OptionalText = Field(None, max_length=50)

    phone: PhoneNumber = None
    email: OptionalEmail = None
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postcode: str | None = Field(None, max_length=10)

    emergency_name: str | None = Field(None, max_length=100)
    emergency_phone: PhoneNumber = None
    emergency_relation: str | None = Field(None, max_length=50)

    category: BeneficiaryCategory | None = None
    status: BeneficiaryStatus | None = None
    priority: Priority | None = None
    notes: str | None = Field(None, max_length=5000)
    tags: list[str] | None = None
    source: str | None = Field(None, max_length=100)

    assigned_to_id: UUID | None = None


class BeneficiaryRead(BaseModel):
    """Beneficiary record as handed out by the entity store."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    gender: Gender | None = None
    nationality: str | None = None
    id_number: str | None = None

    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None

    emergency_name: str | None = None
    emergency_phone: str | None = None
    emergency_relation: str | None = None

    category: BeneficiaryCategory
    status: BeneficiaryStatus
    priority: Priority
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    source: str | None = None

    created_by_id: UUID
    assigned_to_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def stakeholder_ids(self) -> frozenset[UUID]:
        """Users within whose scope this beneficiary falls."""
        return frozenset(i for i in (self.created_by_id, self.assigned_to_id) if i)


class BeneficiaryFilters(BaseModel):
    """List filters for beneficiaries."""
    search: str | None = Field(None, description="Name, phone, email or ID number")
    category: BeneficiaryCategory | None = None
    status: BeneficiaryStatus | None = None
    created_after: datetime | None = None
