"""
Quotes blueprint package.

Quote CRUD, correction files, approval and downloads. See routes.py.
"""

from .routes import quotes_bp  # noqa: F401
