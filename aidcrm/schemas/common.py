"""Shared field types and base classes for input schemas."""

import re
from decimal import Decimal
from typing import Annotated, Any, ClassVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr

from aidcrm.core.config import settings


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_cents(value: Decimal | None) -> Decimal | None:
    # Values with more places are left for the decimal_places check to reject
    if value is None or value.as_tuple().exponent < -2:
        return value
    return value.quantize(Decimal("0.01"))


def phone_pattern() -> re.Pattern[str]:
    return re.compile(rf"^\+{re.escape(settings.PHONE_COUNTRY_CODE)}\d{{9,10}}$")


def _check_phone(value: str | None) -> str | None:
    if value is None:
        return None
    if not phone_pattern().fullmatch(value):
        raise ValueError(
            f"Invalid phone number. Format: +{settings.PHONE_COUNTRY_CODE}123456789"
        )
    return value


PhoneNumber = Annotated[str | None, BeforeValidator(_blank_to_none), AfterValidator(_check_phone)]
OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
Money = Annotated[Decimal | None, AfterValidator(_to_cents)]


class InputSchema(BaseModel):
    """Base for create payloads: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class PartialInputSchema(InputSchema):
    """
    Base for partial updates.

    Every field is optional, but fields listed in ``required_fields`` may
    not be cleared to null once the record exists.
    """

    required_fields: ClassVar[frozenset[str]] = frozenset()

    def cleared_required_fields(self) -> list[str]:
        return sorted(
            name for name in self.model_fields_set
            if name in self.required_fields and getattr(self, name) is None
        )
