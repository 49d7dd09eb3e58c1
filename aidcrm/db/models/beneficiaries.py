"""SQLAlchemy ORM model for beneficiaries."""

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from aidcrm.db.base import Base


class Beneficiary(Base):
    """
    A person receiving aid.

    Never hard-deleted: archiving sets status to ARCHIVED. ``id_number`` is
    unique when present; the unique index is what settles concurrent
    registrations of the same person.
    """
    __tablename__ = "beneficiaries"
    __table_args__ = (
        Index("idx_beneficiaries_created_by", "created_by_id"),
        Index("idx_beneficiaries_assigned_to", "assigned_to_id"),
        Index("idx_beneficiaries_status_category", "status", "category"),
        Index("idx_beneficiaries_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identity
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    id_number: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)

    # Contact
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(10), nullable=True)

    emergency_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    emergency_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    emergency_relation: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Classification
    category: Mapped[str] = mapped_column(String(30), nullable=False)  # BeneficiaryCategory
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # BeneficiaryStatus
    priority: Mapped[str] = mapped_column(String(10), nullable=False)  # Priority
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Ownership
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
