"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Actor roles.

    The set is a capability set, not a strict ladder:
    - SUPER_ADMIN / ADMIN: unrestricted read and write
    - STAFF / FIELD_WORKER: create anything, read/update what they own
    - VOLUNTEER: read-only over what they own
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    FIELD_WORKER = "FIELD_WORKER"
    VOLUNTEER = "VOLUNTEER"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
