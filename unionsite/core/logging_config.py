"""
Union site - Logging

Text lines with the request id and caller in development, one JSON object
per line in production. Request id and caller live in context variables set
by RequestLoggingMiddleware and the auth dependencies.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from unionsite.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


# LogRecord attributes that are not `extra=` fields
_STANDARD_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {
    'message', 'asctime', 'taskName', 'request_id', 'user_id',
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, `extra=` fields included"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
            "request_id": get_request_id() or None,
            "user_id": get_user_id() or None,
        }

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        entry.update({
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith('_')
        })
        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextualFormatter(logging.Formatter):
    """Plain text with request id and caller filled in"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class UnionSiteLogger(logging.Logger):
    """Logger with helpers for the site's recurring events"""

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Signup, login, logout and password reset outcomes"""
        parts = [f"Auth {event}: {'ok' if success else 'failed'}"]
        if user_email:
            parts.append(user_email)
        if reason:
            parts.append(reason)
        self.log(
            logging.INFO if success else logging.WARNING,
            " - ".join(parts),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_push_event(self, category: str, sent: int = 0, removed: int = 0,
                       skipped: Optional[str] = None, **kwargs) -> None:
        """One notification fan-out"""
        summary = f"skipped ({skipped})" if skipped else f"sent={sent} removed={removed}"
        self.info(
            f"Push {category}: {summary}",
            extra={
                "event_type": "push",
                "push_category": category,
                "push_sent": sent,
                "push_removed": removed,
                "push_skipped": skipped,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None, **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {error}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )


TEXT_FORMAT = "%(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | %(funcName)s:%(lineno)d | %(message)s"


def setup_logging() -> UnionSiteLogger:
    """Configure the "unionsite" logger for the current environment"""
    logger = logging.getLogger("unionsite")
    logger.__class__ = UnionSiteLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    json_logging = settings.ENVIRONMENT == "production"
    console_formatter = JSONFormatter() if json_logging else ContextualFormatter(TEXT_FORMAT)
    file_formatter = JSONFormatter() if json_logging else ContextualFormatter(FILE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(console_formatter)
    logger.addHandler(console)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
        rotating.setLevel(logging.DEBUG)
        rotating.setFormatter(file_formatter)
        logger.addHandler(rotating)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug(f"Logging ready (environment={settings.ENVIRONMENT}, json={json_logging})")
    return logger


logger: UnionSiteLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'UnionSiteLogger',
]
