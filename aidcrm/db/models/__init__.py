"""SQLAlchemy ORM models."""

from aidcrm.db.models.audit import AuditLog
from aidcrm.db.models.auth import User
from aidcrm.db.models.beneficiaries import Beneficiary
from aidcrm.db.models.cases import Case, case_assignees
from aidcrm.db.models.services import Service

__all__ = ["AuditLog", "Beneficiary", "Case", "Service", "User", "case_assignees"]
