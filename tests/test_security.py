"""Access policy table: role checks and ownership predicates."""
from types import SimpleNamespace

import pytest

from quotedesk.errors import AuthorizationError
from quotedesk.models import ROLE_ADMIN, ROLE_DIE_SUPPLIER, ROLE_KNIFE_SUPPLIER
from quotedesk.security import POLICY, Operation, authorize, enforce

ADMIN_OPERATIONS = {
    Operation.CREATE_QUOTE,
    Operation.UPDATE_QUOTE,
    Operation.DELETE_QUOTE,
    Operation.MANAGE_CORRECTION_FILE,
    Operation.APPROVE_PROPOSAL,
    Operation.REVIEW_DRAWING,
    Operation.VIEW_PENDING_DRAWINGS,
    Operation.MANAGE_USERS,
    Operation.DELETE_USER,
    Operation.TOGGLE_USER_STATUS,
    Operation.VIEW_FINANCIALS,
}
SUPPLIER_OPERATIONS = {Operation.CREATE_PROPOSAL, Operation.SUBMIT_DRAWING, Operation.RESUBMIT_DRAWING}


def _user(user_id, role):
    return SimpleNamespace(id=user_id, role=role)


def test_every_operation_has_a_rule():
    assert set(POLICY) == set(Operation)


@pytest.mark.parametrize("operation", sorted(ADMIN_OPERATIONS, key=lambda op: op.value))
def test_admin_only_operations(operation):
    assert authorize(ROLE_ADMIN, operation)
    assert not authorize(ROLE_KNIFE_SUPPLIER, operation)
    assert not authorize(ROLE_DIE_SUPPLIER, operation)


@pytest.mark.parametrize("operation", sorted(SUPPLIER_OPERATIONS, key=lambda op: op.value))
def test_supplier_only_operations(operation):
    assert not authorize(ROLE_ADMIN, operation)
    assert authorize(ROLE_KNIFE_SUPPLIER, operation)
    assert authorize(ROLE_DIE_SUPPLIER, operation)


def test_unknown_role_is_denied():
    assert not authorize(None, Operation.LIST_QUOTES)
    assert not authorize("viewer", Operation.LIST_QUOTES)


def test_enforce_uses_rule_message():
    with pytest.raises(AuthorizationError, match="Only admins can approve proposals"):
        enforce(_user(2, ROLE_KNIFE_SUPPLIER), Operation.APPROVE_PROPOSAL)


def test_enforce_anonymous():
    with pytest.raises(AuthorizationError):
        enforce(None, Operation.LIST_QUOTES)


def test_drawing_ownership():
    supplier = _user(7, ROLE_KNIFE_SUPPLIER)
    enforce(supplier, Operation.SUBMIT_DRAWING, SimpleNamespace(supplier_id=7))
    with pytest.raises(AuthorizationError, match="Not authorized"):
        enforce(supplier, Operation.SUBMIT_DRAWING, SimpleNamespace(supplier_id=8))


def test_admin_cannot_delete_self():
    admin = _user(1, ROLE_ADMIN)
    enforce(admin, Operation.DELETE_USER, _user(2, ROLE_KNIFE_SUPPLIER))
    with pytest.raises(AuthorizationError, match="Cannot delete your own account"):
        enforce(admin, Operation.DELETE_USER, admin)
