"""
PASSWORD HASHING & VERIFICATION MODULE
=====================================

Verifies a supplied secret against the value stored in members.pw.

Stored values follow the delegating "{id}" prefix convention:
- {noop}secret          plain text, only for development seed data
- {bcrypt}$2b$12$...    bcrypt hash
- {argon2}$argon2id$... Argon2 hash
Unprefixed bcrypt and Argon2 hashes are recognised by their own markers.

FLOW:
- hash_password() creates a {bcrypt} value before storage.
- verify_password() checks a login against the stored value.

WHY:
- The store decides the scheme per row, so old rows keep working while new
  rows use a stronger hash.

HOW:
- bcrypt via the bcrypt library, Argon2 via a passlib CryptContext,
  {noop} via a constant-time comparison.

USAGE:
    from security.password_hash import hash_password, verify_password
    row_pw = hash_password("test123")
    if verify_password(form_password, row_pw):
        ...
"""

from __future__ import annotations

import hmac
import re

import bcrypt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

# Argon2 rows; bcrypt is handled by the bcrypt library directly
argon2_context = CryptContext(schemes=["argon2"], deprecated="auto")

_PREFIX = re.compile(r"^\{([a-z0-9]+)\}(.*)$", re.DOTALL)


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")
    return "{bcrypt}" + hashed


def split_encoding(stored: str) -> tuple[str | None, str]:
    """Return (scheme id, encoded value); scheme is None when unprefixed."""
    match = _PREFIX.match(stored or "")
    if not match:
        return None, stored or ""
    return match.group(1), match.group(2)


def _verify_bcrypt(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _verify_argon2(password: str, hashed: str) -> bool:
    try:
        return argon2_context.verify(password, hashed)
    except (UnknownHashError, ValueError):
        return False


def verify_password(plain_password: str, stored_password: str) -> bool:
    """
    Verify a plain text password against a stored value.

    Unknown schemes and malformed hashes verify as False.
    """
    if plain_password is None or not stored_password:
        return False
    scheme, encoded = split_encoding(stored_password)
    if scheme is None:
        if encoded.startswith("$2"):
            scheme = "bcrypt"
        elif encoded.startswith("$argon2"):
            scheme = "argon2"
    if scheme == "noop":
        return hmac.compare_digest(plain_password.encode("utf-8"), encoded.encode("utf-8"))
    if scheme == "bcrypt":
        return _verify_bcrypt(plain_password, encoded)
    if scheme == "argon2":
        return _verify_argon2(plain_password, encoded)
    return False
