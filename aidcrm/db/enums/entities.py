"""Entity kinds handled by the core."""

from enum import Enum


class EntityKind(str, Enum):
    BENEFICIARY = "beneficiary"
    CASE = "case"
    SERVICE = "service"
