"""Structured logging helpers (PHI-safe)."""

import logging
from typing import Any
from uuid import UUID

from aidcrm.core.config import settings


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    action: str | None = None,
    entity_id: UUID | str | None = None,
    state: str | None = None,
    error_kind: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict (identifiers only, never names or numbers)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if action:
        context["action"] = action
    if entity_id:
        context["entity_id"] = str(entity_id)
    if state:
        context["state"] = state
    if error_kind:
        context["error_kind"] = error_kind
    return context


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process and the CLI."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
