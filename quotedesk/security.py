"""
quotedesk/security.py

Access policy for every lifecycle, user-management and reporting operation.

Key rules:
- UI is never trusted; all permission checks are server-side.
- One declarative table (POLICY) maps each Operation to the roles allowed
  to perform it, plus an optional ownership predicate evaluated against
  the target resource. Services call enforce() before doing any work.
- Admin: quotes, correction files, approvals, users, drawing review,
  pending-drawing queue, financial reports.
- Suppliers: proposals for their own type, drawings for their own proposals.
- An admin may not delete (or deactivate) their own account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, FrozenSet, Optional

from .errors import AuthorizationError
from .models import ROLE_ADMIN, ROLES, SUPPLIER_ROLES, User

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    LIST_QUOTES = "list_quotes"
    DOWNLOAD_FILE = "download_file"
    CREATE_QUOTE = "create_quote"
    UPDATE_QUOTE = "update_quote"
    DELETE_QUOTE = "delete_quote"
    MANAGE_CORRECTION_FILE = "manage_correction_file"
    APPROVE_PROPOSAL = "approve_proposal"

    CREATE_PROPOSAL = "create_proposal"
    SUBMIT_DRAWING = "submit_drawing"
    RESUBMIT_DRAWING = "resubmit_drawing"
    REVIEW_DRAWING = "review_drawing"
    VIEW_PENDING_DRAWINGS = "view_pending_drawings"

    MANAGE_USERS = "manage_users"
    DELETE_USER = "delete_user"
    TOGGLE_USER_STATUS = "toggle_user_status"

    VIEW_FINANCIALS = "view_financials"


def _owns_proposal(actor: User, proposal: Any) -> bool:
    return getattr(proposal, "supplier_id", None) == actor.id


def _is_other_user(actor: User, target: Any) -> bool:
    return getattr(target, "id", None) != actor.id


@dataclass(frozen=True)
class Rule:
    roles: FrozenSet[str]
    denied: str
    owner: Optional[Callable[[User, Any], bool]] = None
    not_owner: str = "Forbidden"


ADMIN_ONLY = frozenset({ROLE_ADMIN})
SUPPLIERS_ONLY = frozenset(SUPPLIER_ROLES)
ANY_ROLE = frozenset(ROLES)

POLICY: dict[Operation, Rule] = {
    Operation.LIST_QUOTES: Rule(ANY_ROLE, "Forbidden"),
    Operation.DOWNLOAD_FILE: Rule(ANY_ROLE, "Forbidden"),
    Operation.CREATE_QUOTE: Rule(ADMIN_ONLY, "Only admins can create quotes"),
    Operation.UPDATE_QUOTE: Rule(ADMIN_ONLY, "Only admins can update quotes"),
    Operation.DELETE_QUOTE: Rule(ADMIN_ONLY, "Only admins can delete quotes"),
    Operation.MANAGE_CORRECTION_FILE: Rule(ADMIN_ONLY, "Only admins can manage correction files"),
    Operation.APPROVE_PROPOSAL: Rule(ADMIN_ONLY, "Only admins can approve proposals"),
    Operation.CREATE_PROPOSAL: Rule(SUPPLIERS_ONLY, "Admins cannot create proposals"),
    Operation.SUBMIT_DRAWING: Rule(
        SUPPLIERS_ONLY,
        "Admins cannot upload technical drawings",
        owner=_owns_proposal,
        not_owner="Not authorized to upload for this proposal",
    ),
    Operation.RESUBMIT_DRAWING: Rule(
        SUPPLIERS_ONLY,
        "Admins cannot upload technical drawings",
        owner=_owns_proposal,
        not_owner="Not authorized to resubmit for this proposal",
    ),
    Operation.REVIEW_DRAWING: Rule(ADMIN_ONLY, "Only admins can review technical drawings"),
    Operation.VIEW_PENDING_DRAWINGS: Rule(ADMIN_ONLY, "Only admins can view pending technical drawings"),
    Operation.MANAGE_USERS: Rule(ADMIN_ONLY, "Only admins can manage users"),
    Operation.DELETE_USER: Rule(
        ADMIN_ONLY,
        "Only admins can delete users",
        owner=_is_other_user,
        not_owner="Cannot delete your own account",
    ),
    Operation.TOGGLE_USER_STATUS: Rule(
        ADMIN_ONLY,
        "Only admins can toggle user status",
        owner=_is_other_user,
        not_owner="Cannot deactivate your own account",
    ),
    Operation.VIEW_FINANCIALS: Rule(ADMIN_ONLY, "Only admins can view financial reports"),
}


def authorize(role: str | None, operation: Operation) -> bool:
    """Pure role check: may `role` perform `operation` at all?"""
    rule = POLICY.get(operation)
    if rule is None or role is None:
        return False
    return role in rule.roles


def enforce(actor: User | None, operation: Operation, resource: Any = None) -> None:
    """
    Raise AuthorizationError unless `actor` may perform `operation`.

    When `resource` is given and the rule has an ownership predicate, the
    predicate must hold for (actor, resource) as well.
    """
    rule = POLICY[operation]
    role = getattr(actor, "role", None)

    if actor is None or not authorize(role, operation):
        logger.warning("Denied %s for user=%s role=%s", operation.value, getattr(actor, "id", None), role)
        raise AuthorizationError(rule.denied)

    if resource is not None and rule.owner is not None and not rule.owner(actor, resource):
        logger.warning("Denied %s on %r for user=%s (ownership)", operation.value, resource, actor.id)
        raise AuthorizationError(rule.not_owner)
