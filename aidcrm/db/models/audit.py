"""SQLAlchemy ORM model for the audit trail."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from aidcrm.db.base import Base


class AuditLog(Base):
    """
    Append-only audit trail of accepted mutations.

    Rows are inserted in the same transaction as the mutation they describe
    and are never updated or deleted. ``entry_hash`` chains each row to its
    predecessor so tampering is detectable.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_action_timestamp", "action", "timestamp"),
        Index("idx_audit_user_timestamp", "user_id", "timestamp"),
        Index("idx_audit_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # AuditAction
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    # Target entity; kept as plain columns so rows outlive deleted cases/services
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    details: Mapped[dict] = mapped_column(JSON, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_hash: Mapped[str] = mapped_column(String(64), nullable=False)
