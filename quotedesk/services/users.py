"""
User management (admin only) and credential checks.

Rules enforced:
- email, role, name required; password required on create.
- email unique (case-insensitive, stored lower-case).
- an admin may not delete or deactivate their own account.
- accounts referenced by quotes or proposals are kept (deactivate instead).

Audit:
- CREATE / UPDATE / DELETE logged
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..audit import log_action, serialize_model
from ..errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import ROLES, Proposal, Quote, User
from ..security import Operation, enforce
from .transactions import unit_of_work

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "Email already exists"


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _get_user(session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _email_taken(session, email: str, exclude_user_id: Optional[int] = None) -> bool:
    q = session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.first() is not None


def authenticate(session, email: str, password: str) -> User:
    """Return the active user owning these credentials."""
    email = _clean(email).lower()
    user = session.query(User).filter(User.email == email).first() if email else None

    if user is None or not user.check_password(password or ""):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthorizationError("Account is inactive")
    return user


def list_users(session, actor: User) -> list[User]:
    enforce(actor, Operation.MANAGE_USERS)
    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def create_user(
    session,
    actor: User,
    email: str,
    password: str,
    role: str,
    name: str,
    company_name: Optional[str] = None,
) -> User:
    enforce(actor, Operation.MANAGE_USERS)

    email = _clean(email).lower()
    role = _clean(role)
    name = _clean(name)
    password = password or ""

    if not email or not password.strip() or not role or not name:
        raise ValidationError("Email, password, role, and name are required")
    if role not in ROLES:
        raise ValidationError("Invalid role")
    if _email_taken(session, email):
        raise ConflictError(DUPLICATE_EMAIL)

    with unit_of_work(session, conflict_message=DUPLICATE_EMAIL):
        user = User(
            email=email,
            role=role,
            name=name,
            company_name=_clean(company_name) or None,
            is_active=True,
        )
        user.set_password(password)
        session.add(user)
        session.flush()
        log_action(session, user, "CREATE", actor, after=serialize_model(user))

    logger.info("User %s created (%s) by user=%s", user.id, user.role, actor.id)
    return user


def update_user(
    session,
    actor: User,
    user_id: int,
    email: str,
    role: str,
    name: str,
    company_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    password: Optional[str] = None,
) -> User:
    """Password changes only when a new one is provided."""
    enforce(actor, Operation.MANAGE_USERS)

    email = _clean(email).lower()
    role = _clean(role)
    name = _clean(name)

    if not email or not role or not name:
        raise ValidationError("Email, role, and name are required")
    if role not in ROLES:
        raise ValidationError("Invalid role")

    user = _get_user(session, user_id)
    if is_active is False:
        enforce(actor, Operation.TOGGLE_USER_STATUS, user)
    if _email_taken(session, email, exclude_user_id=user.id):
        raise ConflictError(DUPLICATE_EMAIL)

    with unit_of_work(session, conflict_message=DUPLICATE_EMAIL):
        before = serialize_model(user)
        user.email = email
        user.role = role
        user.name = name
        user.company_name = _clean(company_name) or None
        if is_active is not None:
            user.is_active = bool(is_active)
        if password and password.strip():
            user.set_password(password)
        session.flush()
        log_action(session, user, "UPDATE", actor, before=before, after=serialize_model(user))

    return user


def delete_user(session, actor: User, user_id: int) -> None:
    enforce(actor, Operation.DELETE_USER)

    user = _get_user(session, user_id)
    enforce(actor, Operation.DELETE_USER, user)

    referenced = (
        session.query(Quote.id)
        .filter((Quote.created_by == user.id) | (Quote.approved_supplier_id == user.id))
        .first()
        or session.query(Proposal.id).filter(Proposal.supplier_id == user.id).first()
    )
    if referenced:
        raise ConflictError("User has quotes or proposals; deactivate the account instead")

    with unit_of_work(session, conflict_message="User is still referenced by other records"):
        log_action(session, user, "DELETE", actor, before=serialize_model(user))
        session.delete(user)

    logger.info("User %s deleted by user=%s", user_id, actor.id)


def toggle_user_status(session, actor: User, user_id: int) -> User:
    enforce(actor, Operation.TOGGLE_USER_STATUS)

    user = _get_user(session, user_id)
    enforce(actor, Operation.TOGGLE_USER_STATUS, user)

    with unit_of_work(session):
        before = serialize_model(user)
        user.is_active = not user.is_active
        session.flush()
        log_action(session, user, "UPDATE", actor, before=before, after=serialize_model(user))

    return user
