"""
SECURITY
========
Access rules, credential store and the FastAPI security filter chain.
"""

from security.credential_store import (
    CredentialStoreUnavailable,
    InMemoryCredentialStore,
    Principal,
    SqlCredentialStore,
)
from security.filter_chain import SecurityFilterMiddleware, apply_security
from security.rbac import AuthorizationDecision, AuthorizationEngine
from security.rules import AccessRule, AccessRuleConfigurationError, compile_rules

__all__ = [
    "AccessRule",
    "AccessRuleConfigurationError",
    "AuthorizationDecision",
    "AuthorizationEngine",
    "CredentialStoreUnavailable",
    "InMemoryCredentialStore",
    "Principal",
    "SecurityFilterMiddleware",
    "SqlCredentialStore",
    "apply_security",
    "compile_rules",
]
