"""Service-record enums."""

from enum import Enum


class ServiceType(str, Enum):
    FOOD_DISTRIBUTION = "FOOD_DISTRIBUTION"
    SHELTER_ADMISSION = "SHELTER_ADMISSION"
    SHELTER_EXIT = "SHELTER_EXIT"
    MEDICAL_CHECKUP = "MEDICAL_CHECKUP"
    COUNSELING = "COUNSELING"
    EDUCATION = "EDUCATION"
    FINANCIAL_AID = "FINANCIAL_AID"
    RESCUE = "RESCUE"
    OTHER = "OTHER"
