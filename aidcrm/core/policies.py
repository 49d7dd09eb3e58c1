"""Centralized role policies for beneficiaries, cases, services and the audit log.

Authorization is a pure function of (actor, action, target). Each action
maps to a verb, and each role grants every verb one of three capabilities:
ALL (any row), SCOPED (rows the actor created or is assigned to) or NONE.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from aidcrm.core.errors import CoreError, ForbiddenError, UnauthorizedError
from aidcrm.db.enums import Role
from aidcrm.db.store import OwnedBy, Scope, Unrestricted
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryRead
from aidcrm.schemas.case import CaseRead
from aidcrm.schemas.service import ServiceRead

Target = Union[BeneficiaryRead, CaseRead, ServiceRead]


class Verb(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    ARCHIVE = "archive"
    DELETE = "delete"
    LIST = "list"
    READ_AUDIT = "read_audit"


class Action(str, Enum):
    """Every operation the core authorizes."""

    CREATE_BENEFICIARY = "create_beneficiary"
    READ_BENEFICIARY = "read_beneficiary"
    UPDATE_BENEFICIARY = "update_beneficiary"
    ARCHIVE_BENEFICIARY = "archive_beneficiary"
    LIST_BENEFICIARIES = "list_beneficiaries"

    CREATE_CASE = "create_case"
    READ_CASE = "read_case"
    UPDATE_CASE = "update_case"
    DELETE_CASE = "delete_case"
    LIST_CASES = "list_cases"

    CREATE_SERVICE = "create_service"
    READ_SERVICE = "read_service"
    UPDATE_SERVICE = "update_service"
    DELETE_SERVICE = "delete_service"
    LIST_SERVICES = "list_services"

    LIST_AUDIT_LOG = "list_audit_log"
    VIEW_DASHBOARD = "view_dashboard"

    @property
    def verb(self) -> Verb:
        return ACTION_VERBS[self]


ACTION_VERBS: dict[Action, Verb] = {
    Action.CREATE_BENEFICIARY: Verb.CREATE,
    Action.READ_BENEFICIARY: Verb.READ,
    Action.UPDATE_BENEFICIARY: Verb.UPDATE,
    Action.ARCHIVE_BENEFICIARY: Verb.ARCHIVE,
    Action.LIST_BENEFICIARIES: Verb.LIST,
    Action.CREATE_CASE: Verb.CREATE,
    Action.READ_CASE: Verb.READ,
    Action.UPDATE_CASE: Verb.UPDATE,
    Action.DELETE_CASE: Verb.DELETE,
    Action.LIST_CASES: Verb.LIST,
    Action.CREATE_SERVICE: Verb.CREATE,
    Action.READ_SERVICE: Verb.READ,
    Action.UPDATE_SERVICE: Verb.UPDATE,
    Action.DELETE_SERVICE: Verb.DELETE,
    Action.LIST_SERVICES: Verb.LIST,
    Action.LIST_AUDIT_LOG: Verb.READ_AUDIT,
    # Dashboard counts are scoped lists in aggregate
    Action.VIEW_DASHBOARD: Verb.LIST,
}

# Verbs that act on one existing row and therefore need a target
TARGETED_VERBS = frozenset({Verb.READ, Verb.UPDATE, Verb.ARCHIVE, Verb.DELETE})


class Capability(str, Enum):
    ALL = "all"
    SCOPED = "scoped"
    NONE = "none"


_ADMIN = {verb: Capability.ALL for verb in Verb}

_WORKER = {
    Verb.CREATE: Capability.ALL,
    Verb.READ: Capability.SCOPED,
    Verb.UPDATE: Capability.SCOPED,
    Verb.LIST: Capability.SCOPED,
    Verb.ARCHIVE: Capability.NONE,
    Verb.DELETE: Capability.NONE,
    Verb.READ_AUDIT: Capability.NONE,
}

_VOLUNTEER = {
    Verb.CREATE: Capability.NONE,
    Verb.READ: Capability.SCOPED,
    Verb.UPDATE: Capability.NONE,
    Verb.LIST: Capability.SCOPED,
    Verb.ARCHIVE: Capability.NONE,
    Verb.DELETE: Capability.NONE,
    Verb.READ_AUDIT: Capability.NONE,
}

RULES: dict[Role, dict[Verb, Capability]] = {
    Role.SUPER_ADMIN: _ADMIN,
    Role.ADMIN: _ADMIN,
    Role.STAFF: _WORKER,
    Role.FIELD_WORKER: _WORKER,
    Role.VOLUNTEER: _VOLUNTEER,
}


def capability_for(role: Role, verb: Verb) -> Capability:
    """Capability a role has for a verb (NONE when unlisted)."""
    return RULES.get(role, {}).get(verb, Capability.NONE)


# =============================================================================
# Decisions
# =============================================================================

class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NO_CAPABILITY = "no_capability"
    OUT_OF_SCOPE = "out_of_scope"


@dataclass(frozen=True)
class Allow:
    """Operation permitted on the given target (or on every row)."""


@dataclass(frozen=True)
class Scoped:
    """Operation permitted; list results must be restricted to ``scope``."""
    scope: Scope


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    detail: str = ""

    def to_error(self) -> CoreError:
        if self.reason == DenyReason.UNAUTHENTICATED:
            return UnauthorizedError(self.detail or "Not authenticated")
        return ForbiddenError(self.detail or "Forbidden")


Decision = Union[Allow, Scoped, Deny]


def _unauthenticated(actor: Actor | None) -> Deny | None:
    if actor is None:
        return Deny(DenyReason.UNAUTHENTICATED, "Not authenticated")
    if not actor.is_active:
        return Deny(DenyReason.UNAUTHENTICATED, "Account is disabled")
    return None


def check_capability(actor: Actor | None, action: Action) -> Decision:
    """
    Target-free precheck.

    Returns Allow for ALL, Scoped(OwnedBy(actor)) for SCOPED and Deny for
    NONE. Callers run this before loading a target so that a role with no
    capability is refused without learning whether the id exists.
    """
    denied = _unauthenticated(actor)
    if denied:
        return denied
    capability = capability_for(actor.role, action.verb)
    if capability == Capability.ALL:
        return Allow()
    if capability == Capability.SCOPED:
        return Scoped(OwnedBy(actor.user_id))
    return Deny(
        DenyReason.NO_CAPABILITY,
        f"Role {actor.role.value} cannot {action.verb.value} here",
    )


def authorize(actor: Actor | None, action: Action, target: Target | None = None) -> Decision:
    """
    Decide whether ``actor`` may perform ``action`` on ``target``.

    For single-entity actions the result is Allow or Deny. For list-style
    actions (no target) it is Allow, Scoped or Deny.
    """
    decision = check_capability(actor, action)
    if not isinstance(decision, Scoped):
        return decision
    if action.verb not in TARGETED_VERBS:
        return decision
    if target is None:
        raise ValueError(f"{action.value} is scoped and needs a target")
    if actor.user_id in target.stakeholder_ids:
        return Allow()
    return Deny(DenyReason.OUT_OF_SCOPE, "You don't have access to this record")


def list_scope(decision: Decision) -> Scope:
    """Scope to apply to a list/count for a non-denied decision."""
    if isinstance(decision, Scoped):
        return decision.scope
    return Unrestricted()


def require(actor: Actor | None, action: Action, target: Target | None = None) -> Decision:
    """authorize() that raises the mapped error on Deny."""
    decision = authorize(actor, action, target)
    if isinstance(decision, Deny):
        raise decision.to_error()
    return decision
