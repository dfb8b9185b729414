"""
Logging configuration for Quote Desk.
Called once from create_app(); modules log through logging.getLogger(__name__).
"""

import json
import logging
from datetime import datetime, timezone

PACKAGE_LOGGER = "quotedesk"


class JSONFormatter(logging.Formatter):
    """Structured JSON log lines for machine parsing."""

    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Readable console format."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")


def configure_logging(app) -> logging.Logger:
    """
    Attach one console handler to the package logger.

    Level comes from LOG_LEVEL; LOG_JSON switches to one JSON object per line.
    Safe to call for every app instance (tests build many).
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if app.config.get("LOG_JSON") else HumanFormatter())

    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)

    app.logger.setLevel(level)
    return logger
