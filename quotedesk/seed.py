"""
quotedesk/seed.py

Bootstrap data.

Rules:
- Safe to run multiple times (idempotent).
- Ensures the singleton quote_counter row (id = 1).
- Creates the configured default administrator if no user owns that email.
"""

from __future__ import annotations

import logging

from flask import current_app

from .extensions import db
from .models import ROLE_ADMIN, QuoteCounter, User

logger = logging.getLogger(__name__)


def ensure_quote_counter() -> QuoteCounter:
    counter = db.session.get(QuoteCounter, 1)
    if counter is None:
        counter = QuoteCounter(id=1, last_number=0)
        db.session.add(counter)
        db.session.flush()
    return counter


def seed_default_admin() -> User:
    """Return the bootstrap admin, creating it (and the counter row) when missing."""
    cfg = current_app.config
    email = cfg["DEFAULT_ADMIN_EMAIL"].strip().lower()

    ensure_quote_counter()

    admin = User.query.filter_by(email=email).first()
    if admin is None:
        admin = User(
            email=email,
            role=ROLE_ADMIN,
            name=cfg["DEFAULT_ADMIN_NAME"],
            company_name=cfg.get("DEFAULT_ADMIN_COMPANY") or None,
            is_active=True,
        )
        admin.set_password(cfg["DEFAULT_ADMIN_PASSWORD"])
        db.session.add(admin)
        logger.info("Default admin %s created", email)

    db.session.commit()
    return admin
