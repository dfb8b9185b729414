"""
Utility functions shared across the blueprints. This includes:
- request_data: JSON body or form fields, whichever the client sent.
- parse_optional_bool: tolerant boolean parsing for JSON/form values.
- parse_id: strict integer ids from request bodies.
- to_jsonable: Decimal -> float conversion for report payloads.
- lifecycle_engine: engine bound to the request's session and file store.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from flask import request

from .errors import ValidationError
from .extensions import db
from .services.lifecycle import LifecycleEngine
from .storage import get_file_store

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_ID_RE = re.compile(r"[0-9]+")


def request_data():
    """Return the JSON body when present, the form otherwise."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form


def parse_optional_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return None


def parse_id(value: Any, message: str) -> int:
    """Positive integer id from JSON or form data; bools, floats and other strings are refused."""
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str) and _ID_RE.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise ValidationError(message)
    if parsed <= 0:
        raise ValidationError(message)
    return parsed


def to_jsonable(value: Any) -> Any:
    """Recursively turn Decimals into floats (Flask would emit them as strings)."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def lifecycle_engine() -> LifecycleEngine:
    return LifecycleEngine(db.session, get_file_store())
