"""
Service layer: every state change of the system goes through here.

Routes stay thin (parse request -> call service -> serialize). Services
receive their SQLAlchemy session (and file store) explicitly.
"""

from .lifecycle import LifecycleEngine  # noqa: F401
