from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from .database import Base

# --- CREDENTIALS ---
# Column names follow the queries in security.credential_store.


class Member(Base):
    __tablename__ = "members"

    user_id = Column(String(50), primary_key=True)
    pw = Column(String(100), nullable=False)
    active = Column(Boolean, nullable=False, default=True)


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_roles_user_role"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), ForeignKey("members.user_id"), nullable=False, index=True)
    # Stored with the ROLE_ prefix, e.g. ROLE_MANAGER
    role = Column(String(50), nullable=False)


# --- DIRECTORY ---

class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(45), nullable=False)
    last_name = Column(String(45), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
