"""Identity schemas: the acting user and stored user records."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from aidcrm.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class UserRead(BaseModel):
    """Stored user record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: Role
    organization: str | None = None
    phone: str | None = None
    is_active: bool = True
    token_version: int = 1
    created_at: datetime


class Actor(BaseModel):
    """
    The authenticated user an operation runs on behalf of.

    Built from a verified session token and the stored user row. Every
    core operation takes ``Actor | None``; None means unauthenticated.
    """

    user_id: UUID
    role: Role
    email: str
    name: str
    is_active: bool = True

    @classmethod
    def from_user(cls, user: UserRead) -> "Actor":
        return cls(
            user_id=user.id,
            role=user.role,
            email=user.email,
            name=user.name,
            is_active=user.is_active,
        )
