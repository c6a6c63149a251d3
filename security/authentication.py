"""
SECURE USER AUTHENTICATION
==========================
Authenticate Basic credentials against the credential store.

FLOW:
- Resolve the member by user id.
- Verify the supplied password against the stored value.
- Return the principal on success.

WHY:
- Ensures only active members with a valid password reach the rule check.

HOW:
- Unknown, disabled and wrong-password logins all return None after one
  password check, so callers cannot tell which step failed.
- Store outages propagate.
"""

from __future__ import annotations

from typing import Optional

from security.credential_store import CredentialStore, Principal
from security.password_hash import hash_password, verify_password

# Checked when the member is unknown or disabled, so every failed login pays
# one password verification.
_DUMMY_HASH = hash_password("userNotFoundPassword")


def authenticate_user(store: CredentialStore, username: str, password: str) -> Optional[Principal]:
    """Authenticate user by resolving the member and verifying the password."""
    username = (username or "").strip()
    if not username or not password:
        return None
    principal = store.resolve(username)
    if principal is None or not principal.active:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, principal.secret_hash):
        return None
    return principal
