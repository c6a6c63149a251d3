"""
ROLE-BASED ACCESS CONTROL (RBAC)
================================
Decides, per request, whether to admit, challenge or reject it.

FLOW:
- decide() walks the rule table in declared order; the first matching
  rule governs the request.
- No matching rule -> DENY (fail-closed).
- Matching rule, no principal -> REQUIRE_AUTHENTICATION.
- Matching rule, principal -> ALLOW only if the principal holds the role.

WHY:
- Limits access to each route and HTTP method by role.

HOW:
- Rules carry bare role names ("MANAGER"). Both the rule's role and the
  principal's grants are normalized to authorities by adding "ROLE_", so
  stored grants may be written either way.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterable, Optional

from fastapi import HTTPException, status

from security.activity_logging import clean_log_value
from security.credential_store import Principal
from security.rules import AccessRule, compile_rules

logger = logging.getLogger("security.rbac")


class AuthorizationDecision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    REQUIRE_AUTHENTICATION = "require_authentication"


class AuthorizationEngine:
    """Immutable, first-match-wins rule evaluator. Safe to share between workers."""

    def __init__(self, rules: Iterable):
        self._rules = compile_rules(rules)

    @property
    def rules(self) -> tuple[AccessRule, ...]:
        return self._rules

    def match(self, method: str, path: str) -> Optional[AccessRule]:
        for rule in self._rules:
            if rule.matches(method, path):
                return rule
        return None

    def decide(self, method: str, path: str, principal: Optional[Principal] = None) -> AuthorizationDecision:
        rule = self.match(method, path)
        if rule is None:
            logger.warning("no access rule covers %s %s; denying", clean_log_value(method), clean_log_value(path))
            return AuthorizationDecision.DENY
        if principal is None or not principal.active:
            return AuthorizationDecision.REQUIRE_AUTHENTICATION
        if rule.authority in principal.authorities:
            return AuthorizationDecision.ALLOW
        return AuthorizationDecision.DENY

    def enforce(self, method: str, path: str, principal: Optional[Principal], realm: str = "Realm") -> None:
        """Raise 401/403 unless the request is allowed."""
        decision = self.decide(method, path, principal)
        if decision is AuthorizationDecision.REQUIRE_AUTHENTICATION:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": basic_challenge(realm)},
            )
        if decision is AuthorizationDecision.DENY:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )


def basic_challenge(realm: str) -> str:
    return f'Basic realm="{realm}"'
