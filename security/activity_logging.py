"""
ACTIVITY TRACKING
=================
Structured access-decision logging for monitoring.

FLOW:
- The security filter chain calls log_decision() once per request.
- Rule gaps and store outages are logged at WARNING / ERROR.

WHY:
- Provides traceability for security audits and incident response.

HOW:
- Writes structured log lines to <SECURITY_LOG_DIR>/security.log.
- Never logs passwords or Authorization headers.
"""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Optional

from security.security_config import SECURITY_SETTINGS

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def clean_log_value(value: Optional[str]) -> str:
    """Escape control characters so a caller cannot start a new log line."""
    return _CONTROL_CHARS.sub(lambda m: "\\x%02x" % ord(m.group()), value or "")


def _get_logger() -> logging.Logger:
    logger = logging.getLogger("security.activity")
    if logger.handlers or not SECURITY_SETTINGS["SECURITY_LOG_TO_FILE"]:
        return logger

    log_dir = SECURITY_SETTINGS["SECURITY_LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, "security.log"),
        maxBytes=SECURITY_SETTINGS["SECURITY_LOG_MAX_BYTES"],
        backupCount=SECURITY_SETTINGS["SECURITY_LOG_BACKUPS"],
    )
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    return logger


def log_decision(
    decision: str,
    method: str,
    path: str,
    principal_id: Optional[str] = None,
    rule: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    level = logging.WARNING if rule is None else logging.INFO
    _get_logger().log(
        level,
        "decision=%s method=%s path=%s principal=%s rule=%s request_id=%s",
        decision,
        clean_log_value(method),
        clean_log_value(path),
        clean_log_value(principal_id) or "-",
        rule or "-",
        clean_log_value(request_id),
    )


def log_store_failure(method: str, path: str, request_id: Optional[str] = None) -> None:
    _get_logger().error(
        "decision=unavailable method=%s path=%s request_id=%s",
        clean_log_value(method),
        clean_log_value(path),
        clean_log_value(request_id),
    )
