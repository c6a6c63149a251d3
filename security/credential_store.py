"""
CREDENTIAL STORE
================
Resolve a principal (secret, active flag, role grants) by user id.

FLOW:
- resolve() runs the member lookup, then the role lookup.
- Missing, inactive or role-less members resolve to None.

WHY:
- "User does not exist" and "could not check" must stay distinguishable;
  database errors surface as CredentialStoreUnavailable, never as None.

HOW:
- Two parameterized SQL statements bound with :user_id (no string building).
- One short-lived SQLAlchemy session per resolution, no caching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from security.rules import ROLE_PREFIX

logger = logging.getLogger("security.credentials")

USERS_BY_ID_QUERY = "SELECT user_id, pw, active FROM members WHERE user_id = :user_id"
AUTHORITIES_BY_ID_QUERY = "SELECT user_id, role FROM roles WHERE user_id = :user_id"


class CredentialStoreUnavailable(RuntimeError):
    """Backing storage could not be queried; not the same as an unknown user."""


def to_authority(role: str) -> str:
    role = (role or "").strip()
    if not role or role.startswith(ROLE_PREFIX):
        return role
    return ROLE_PREFIX + role


@dataclass(frozen=True)
class Principal:
    id: str
    secret_hash: str = field(repr=False)
    active: bool = True
    roles: frozenset = frozenset()

    def __post_init__(self) -> None:
        roles = self.roles or ()
        if isinstance(roles, str):
            roles = (roles,)
        object.__setattr__(self, "roles", frozenset(r for r in roles if r))

    @property
    def authorities(self) -> frozenset:
        return frozenset(to_authority(role) for role in self.roles)


class CredentialStore(Protocol):
    def resolve(self, principal_id: str) -> Optional[Principal]:
        ...


class SqlCredentialStore:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        users_query: str = USERS_BY_ID_QUERY,
        authorities_query: str = AUTHORITIES_BY_ID_QUERY,
    ):
        self.session_factory = session_factory
        self.users_query = text(users_query)
        self.authorities_query = text(authorities_query)

    def resolve(self, principal_id: str) -> Optional[Principal]:
        try:
            with self.session_factory() as db:
                member = db.execute(self.users_query, {"user_id": principal_id}).first()
                if member is None:
                    return None
                user_id, secret_hash, active = member[0], member[1], member[2]
                if not active:
                    logger.debug("member %s is disabled", user_id)
                    return None
                grants = db.execute(self.authorities_query, {"user_id": principal_id}).fetchall()
        except SQLAlchemyError as exc:
            logger.error("credential lookup failed for %s: %s", principal_id, exc.__class__.__name__)
            raise CredentialStoreUnavailable("credential store is unavailable") from exc

        roles = frozenset(row[1] for row in grants if row[1])
        if not roles:
            logger.debug("member %s has no role grants", user_id)
            return None
        return Principal(id=str(user_id), secret_hash=secret_hash or "", active=True, roles=roles)


class InMemoryCredentialStore:
    def __init__(self, principals: Iterable[Principal] | Mapping[str, Principal] = ()):
        if isinstance(principals, Mapping):
            principals = principals.values()
        self._principals = {p.id: p for p in principals}

    def resolve(self, principal_id: str) -> Optional[Principal]:
        principal = self._principals.get(principal_id)
        if principal is None or not principal.active or not principal.roles:
            return None
        return principal
