"""Log setup for the cellar app.

Every record carries the organization it was written for, so split and
maintenance logs from several wineries sharing a process can be told apart.
Operator emails and credentials are masked before anything reaches a handler.
"""

from __future__ import annotations

import logging
import re

from flask import Flask, g, has_request_context

APP_LOGGER = "vinetrack"
QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic", "flask_migrate")

CELLAR_FORMAT = "%(asctime)s %(levelname)-7s [org %(org)s] %(name)s: %(message)s"
DEBUG_CELLAR_FORMAT = "%(asctime)s %(levelname)-7s [org %(org)s] %(name)s:%(lineno)d: %(message)s"

# (pattern, replacement) applied in order
MASKS = (
    (re.compile(r"Bearer\s+\S+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"\b(password|secret|token|api[_-]?key)\b\s*[:=]\s*\S+", re.IGNORECASE), r"\1=***"),
    (re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"), "<operator>"),
)


class OrganizationFilter(logging.Filter):
    """Stamp ``record.org`` with the production org of the current request, or ``-``."""

    def filter(self, record: logging.LogRecord) -> bool:
        org = "-"
        if has_request_context():
            context = g.get("production_context")
            if context is not None:
                org = context.organization_id
        record.org = org
        return True


class MaskingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        for pattern, replacement in MASKS:
            message = pattern.sub(replacement, message)
        record.msg, record.args = message, None
        return True


def configure_logging(app: Flask) -> None:
    level = _level(app.config.get("LOG_LEVEL"))
    for name in (None, APP_LOGGER):
        logging.getLogger(name).setLevel(level)
    app.logger.setLevel(level)
    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    formatter = logging.Formatter(DEBUG_CELLAR_FORMAT if app.debug else CELLAR_FORMAT)
    filters = [OrganizationFilter()]
    if app.config.get("LOG_REDACT_PII", True):
        filters.append(MaskingFilter())
    for handler in logging.getLogger().handlers + app.logger.handlers:
        handler.setFormatter(formatter)
        for log_filter in filters:
            if not any(type(existing) is type(log_filter) for existing in handler.filters):
                handler.addFilter(log_filter)


def _level(raw) -> int:
    if isinstance(raw, int):
        return raw
    level = logging.getLevelName(str(raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO
