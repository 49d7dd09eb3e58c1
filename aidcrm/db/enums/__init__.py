"""Enum definitions for application constants."""

from aidcrm.db.enums.audit import AuditAction
from aidcrm.db.enums.auth import Role
from aidcrm.db.enums.beneficiaries import (
    BeneficiaryCategory,
    BeneficiaryStatus,
    Gender,
    Priority,
)
from aidcrm.db.enums.cases import ACTIVE_CASE_STATUSES, CaseStatus, CaseType
from aidcrm.db.enums.entities import EntityKind
from aidcrm.db.enums.services import ServiceType

__all__ = [
    "ACTIVE_CASE_STATUSES",
    "AuditAction",
    "BeneficiaryCategory",
    "BeneficiaryStatus",
    "CaseStatus",
    "CaseType",
    "EntityKind",
    "Gender",
    "Priority",
    "Role",
    "ServiceType",
]
