from .routes import proposals_bp  # noqa: F401
