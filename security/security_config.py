"""
SECURITY CONFIG
===============
Centralized security settings loaded from environment.
"""

# FLOW:
# - Load the .env file once and expose SECURITY_SETTINGS.
# - load_access_rules() builds the rule table at startup.
# HOW:
# - APP_ENV_FILE selects the env file; defaults to .env in the repo root.

from __future__ import annotations

import json
import logging
import os
from typing import Optional

import dotenv

from security.rules import DEFAULT_RULES, AccessRule, AccessRuleConfigurationError, compile_rules

logger = logging.getLogger("security.env")


def get_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def get_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_path() -> str:
    explicit = os.getenv("APP_ENV_FILE", "").strip()
    if explicit:
        return explicit
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(root, ".env")


dotenv.load_dotenv(_env_path())

if get_bool("APP_ENV_LOG", False):
    logger.info("Active env file: %s", _env_path())


def load_settings() -> dict:
    return {
        "AUTH_REALM": get_str("AUTH_REALM", "Realm"),
        "ACCESS_RULES_FILE": get_str("ACCESS_RULES_FILE", ""),
        "SECURITY_LOG_DIR": get_str("SECURITY_LOG_DIR", "logs"),
        "SECURITY_LOG_TO_FILE": get_bool("SECURITY_LOG_TO_FILE", True),
        "SECURITY_LOG_MAX_BYTES": get_int("SECURITY_LOG_MAX_BYTES", 2_000_000),
        "SECURITY_LOG_BACKUPS": get_int("SECURITY_LOG_BACKUPS", 3),
    }


SECURITY_SETTINGS = load_settings()


def load_access_rules(path: Optional[str] = None) -> tuple[AccessRule, ...]:
    """Rule table from a JSON file (list of {method, pattern, role}) or the defaults."""
    path = path or SECURITY_SETTINGS["ACCESS_RULES_FILE"]
    if not path:
        return compile_rules(DEFAULT_RULES)
    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise AccessRuleConfigurationError(f"cannot read access rules from {path}: {exc}") from exc
    if not isinstance(entries, list):
        raise AccessRuleConfigurationError(f"{path} must contain a JSON list of rules")
    rules = compile_rules(entries)
    logger.info("Loaded %d access rules from %s", len(rules), path)
    return rules
