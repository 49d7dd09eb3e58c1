"""Audit enums."""

from enum import Enum


class AuditAction(str, Enum):
    """
    Closed vocabulary of audit events.

    Exactly one entry is written per accepted mutation. Reads and
    rejected operations never produce an entry.
    """

    BENEFICIARY_CREATED = "BENEFICIARY_CREATED"
    BENEFICIARY_UPDATED = "BENEFICIARY_UPDATED"
    BENEFICIARY_ARCHIVED = "BENEFICIARY_ARCHIVED"

    CASE_CREATED = "CASE_CREATED"
    CASE_UPDATED = "CASE_UPDATED"
    CASE_DELETED = "CASE_DELETED"

    SERVICE_CREATED = "SERVICE_CREATED"
    SERVICE_UPDATED = "SERVICE_UPDATED"
    SERVICE_DELETED = "SERVICE_DELETED"
