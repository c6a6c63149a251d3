"""
Pytest config.

Environment is pinned before any project module is imported: the security
config and the database module read it at import time.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECURITY_LOG_TO_FILE", "false")
os.environ.setdefault("APP_ENV_FILE", os.devnull)


def _ensure_repo_root_on_syspath() -> None:
    repo_root = str(Path(__file__).resolve().parents[1])
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


_ensure_repo_root_on_syspath()

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from employee_api.database import Base  # noqa: E402
from employee_api.models import Employee, Member, Role  # noqa: E402
from security.credential_store import Principal  # noqa: E402

MEMBERS = {
    "john": ("{noop}test123", True, ("ROLE_EMPLOYEE",)),
    "mary": ("{noop}test123", True, ("ROLE_EMPLOYEE", "ROLE_MANAGER")),
    "susan": ("{noop}test123", True, ("ROLE_EMPLOYEE", "ROLE_MANAGER", "ROLE_ADMIN")),
    "retired": ("{noop}test123", False, ("ROLE_EMPLOYEE",)),
    "nobody": ("{noop}test123", True, ()),
}


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = factory()
    for user_id, (pw, active, roles) in MEMBERS.items():
        db.add(Member(user_id=user_id, pw=pw, active=active))
        for role in roles:
            db.add(Role(user_id=user_id, role=role))
    db.add(Employee(first_name="Leslie", last_name="Andrews", email="leslie@example.com"))
    db.commit()
    db.close()
    return factory


@pytest.fixture
def mary() -> Principal:
    return Principal(id="mary", secret_hash="{noop}test123", roles=frozenset({"EMPLOYEE", "MANAGER"}))


@pytest.fixture
def john() -> Principal:
    return Principal(id="john", secret_hash="{noop}test123", roles=frozenset({"EMPLOYEE"}))
