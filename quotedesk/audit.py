"""
quotedesk/audit.py

Audit trail for quote, proposal, drawing and user mutations.

Each entry records the acting user (id + email snapshot, so the trail
survives account deletion), the entity touched, the action and JSON
snapshots of the row before and after. Inside a request the client IP
is stored as well.

Usage inside a service transaction:

    before = serialize_model(quote)
    quote.name = name
    session.flush()
    log_action(session, quote, "UPDATE", actor, before=before, after=serialize_model(quote))
    # commit happens in unit_of_work()

log_action() only ADDS the entry; committing (or rolling back) the
mutation and its audit row together is the caller's job.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request

from .models import AuditLog, User

Snapshot = Dict[str, Optional[str]]

# never written to the audit table
REDACTED_COLUMNS = ("password_hash",)


def serialize_model(instance: Any, exclude: tuple[str, ...] = REDACTED_COLUMNS) -> Snapshot:
    """Column name -> str(value) for every scalar column of `instance` (relationships skipped)."""
    snapshot: Snapshot = {}
    for column in instance.__table__.columns:
        if column.name in exclude:
            continue
        value = getattr(instance, column.name)
        snapshot[column.name] = None if value is None else str(value)
    return snapshot


def _dump(snapshot: Optional[Dict[str, Any]]) -> Optional[str]:
    return json.dumps(snapshot, ensure_ascii=False) if snapshot else None


def log_action(
    session,
    entity: Any,
    action: str,
    actor: User | None,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add one AuditLog row to `session` and return it.

    `entity` must already have an id, so flush before calling on inserts.
    Actions used: CREATE, UPDATE, DELETE, APPROVE, REVIEW, RESUBMIT.
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError(f"Cannot audit {entity.__class__.__name__} without an id; flush first")

    entry = AuditLog(
        user_id=getattr(actor, "id", None),
        username_snapshot=getattr(actor, "email", None),
        entity_type=type(entity).__name__,
        entity_id=int(entity_id),
        action=action,
        before_data=_dump(before),
        after_data=_dump(after),
        ip_address=request.remote_addr if has_request_context() else None,
    )
    session.add(entry)
    return entry
