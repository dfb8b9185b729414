"""Users blueprint package (admin-only user management)."""

from .routes import users_bp  # noqa: F401
