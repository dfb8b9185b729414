"""
quotedesk/tokens.py

Bearer tokens for the JSON API.

- issue_token(): signed JWT carrying {sub, role, exp}.
- load_user_from_request(): Flask-Login request_loader. Resolves the
  `Authorization: Bearer <token>` header to an active User, or None.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app
from jose import JWTError, jwt

from .extensions import db
from .models import User


def issue_token(user: User) -> str:
    minutes = int(current_app.config["JWT_EXPIRES_MINUTES"])
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> Optional[dict]:
    """Return the claims of a valid token, None if invalid or expired."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError:
        return None


def load_user_from_request(request) -> Optional[User]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    claims = decode_token(token.strip())
    if not claims:
        return None

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user
