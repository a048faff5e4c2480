"""
Centralized logging module for the auth backend.

Follows Layer 6 rules:
- Structured logging suitable for Grafana/Prometheus/Loki/ELK
- Appropriate log levels (info, warning, error)
- NEVER logs passwords, password hashes, tokens or secrets
- Security-sensitive actions emit structured logs with username, action, result, timestamp
"""
import logging
import json
from typing import Any, Dict, Optional
from datetime import datetime, timezone

logger = logging.getLogger("auth")
logger.setLevel(logging.INFO)

_handler = logging.StreamHandler()
_handler.setLevel(logging.INFO)

# Fields passed through `extra=`; anything else on the record is dropped
_EXTRA_FIELDS = ("username", "action", "result", "meta")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


_handler.setFormatter(JSONFormatter())
logger.addHandler(_handler)

# Handlers attach to "auth" directly; records do not reach the root logger
logger.propagate = False


def log_security_event(
    action: str,
    result: str,
    username: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    level: str = "info",
    exc_info: bool = False,
) -> None:
    """
    Log security-sensitive actions (signup, login, failed login, rehash, token rejection).

    Emits structured logs with:
    - username, action, result, timestamp
    - Additional metadata in meta dict

    Args:
        action: Action name (e.g., "signup", "login", "rehash")
        result: Result status (e.g., "success", "failure", "denied")
        username: Account username (optional)
        meta: Additional metadata dict (optional); must never carry secrets
        level: Log level ("info", "warning", "error")
        exc_info: Attach the exception being handled, if any
    """
    log_method = getattr(logger, level.lower(), logger.info)
    extra: Dict[str, Any] = {
        "action": action,
        "result": result,
    }
    if username:
        extra["username"] = username
    if meta:
        extra["meta"] = meta

    log_method("Security event", extra=extra, exc_info=exc_info)
