"""Beneficiary-related enums."""

from enum import Enum


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class BeneficiaryCategory(str, Enum):
    """Aid category a beneficiary is registered under."""

    HOMELESS = "HOMELESS"
    ELDERLY = "ELDERLY"
    DISABLED = "DISABLED"
    LOW_INCOME = "LOW_INCOME"
    REFUGEE = "REFUGEE"
    ORPHAN = "ORPHAN"
    SICK = "SICK"
    OTHER = "OTHER"


class BeneficiaryStatus(str, Enum):
    """
    Beneficiary record status.

    ARCHIVED is the soft-delete state and is only reachable through the
    archive operation. DECEASED and ARCHIVED are never left by an update.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"
    DECEASED = "DECEASED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"
