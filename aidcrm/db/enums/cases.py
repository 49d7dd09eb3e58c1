"""Case-related enums."""

from enum import Enum


class CaseType(str, Enum):
    FOOD = "FOOD"
    SHELTER = "SHELTER"
    HEALTHCARE = "HEALTHCARE"
    EDUCATION = "EDUCATION"
    IDENTITY_DOCUMENTS = "IDENTITY_DOCUMENTS"
    EMPLOYMENT = "EMPLOYMENT"
    OTHER = "OTHER"


class CaseStatus(str, Enum):
    """
    Case workflow status.

    OPEN → IN_PROGRESS → RESOLVED → CLOSED, in any order. The first move
    into RESOLVED stamps resolved_at.
    """

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


ACTIVE_CASE_STATUSES = frozenset({CaseStatus.OPEN, CaseStatus.IN_PROGRESS})
