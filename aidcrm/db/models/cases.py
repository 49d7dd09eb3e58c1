"""SQLAlchemy ORM models for cases and their assignees."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Index, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aidcrm.db.base import Base

if TYPE_CHECKING:
    from aidcrm.db.models.auth import User
    from aidcrm.db.models.services import Service


case_assignees = Table(
    "case_assignees",
    Base.metadata,
    Column("case_id", Uuid, ForeignKey("cases.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_case_assignees_user", "user_id"),
)


class Case(Base):
    """
    A tracked unit of work for exactly one beneficiary.

    Hard-deletable; deleting a case removes its services.
    """
    __tablename__ = "cases"
    __table_args__ = (
        Index("idx_cases_beneficiary", "beneficiary_id"),
        Index("idx_cases_created_by", "created_by_id"),
        Index("idx_cases_status_type", "status", "type"),
        Index("idx_cases_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    beneficiary_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("beneficiaries.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)  # CaseType
    priority: Mapped[str] = mapped_column(String(10), nullable=False)  # Priority
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # CaseStatus
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    assignees: Mapped[list[User]] = relationship(secondary=case_assignees, lazy="selectin")
    services: Mapped[list[Service]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
    )

    @property
    def assigned_to_ids(self) -> list[uuid.UUID]:
        return sorted((user.id for user in self.assignees), key=str)
