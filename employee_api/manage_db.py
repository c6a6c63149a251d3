"""
Create the schema and seed the demo members.
Usage: python -m employee_api.manage_db [--reset-passwords]
"""
import argparse

from security.password_hash import hash_password

from .database import Base, SessionLocal, engine
from .models import Employee, Member, Role

DEMO_PASSWORD = "test123"
DEMO_MEMBERS = {
    "john": ("EMPLOYEE",),
    "mary": ("EMPLOYEE", "MANAGER"),
    "susan": ("EMPLOYEE", "MANAGER", "ADMIN"),
}
DEMO_EMPLOYEES = (
    ("Leslie", "Andrews", "leslie@luv2code.com"),
    ("Emma", "Baumgarten", "emma@luv2code.com"),
    ("Avani", "Gupta", "avani@luv2code.com"),
)


def seed_members(db, reset_passwords=False):
    created = 0
    for user_id, roles in DEMO_MEMBERS.items():
        member = db.query(Member).filter(Member.user_id == user_id).first()
        if member is None:
            db.add(Member(user_id=user_id, pw=hash_password(DEMO_PASSWORD), active=True))
            created += 1
        elif reset_passwords:
            member.pw = hash_password(DEMO_PASSWORD)
        granted = {r.role for r in db.query(Role).filter(Role.user_id == user_id).all()}
        for role in roles:
            if f"ROLE_{role}" not in granted:
                db.add(Role(user_id=user_id, role=f"ROLE_{role}"))
    db.commit()
    return created


def seed_employees(db):
    if db.query(Employee).count():
        return 0
    for first_name, last_name, email in DEMO_EMPLOYEES:
        db.add(Employee(first_name=first_name, last_name=last_name, email=email))
    db.commit()
    return len(DEMO_EMPLOYEES)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset-passwords", action="store_true", help="re-hash demo member passwords")
    args = parser.parse_args(argv)

    print("Creating tables (if missing)...")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("Seeding members...")
        print(f"  {seed_members(db, reset_passwords=args.reset_passwords)} new members")
        print("Seeding employees...")
        print(f"  {seed_employees(db)} new employees")
    finally:
        db.close()
    print("All DB management tasks complete.")


if __name__ == "__main__":
    main()
