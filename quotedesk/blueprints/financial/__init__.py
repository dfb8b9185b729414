"""Financial reporting blueprint."""

from .routes import financial_bp  # noqa: F401
