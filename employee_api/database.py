from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import dotenv
import os

dotenv.load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./employee_directory.db"
DATABASE_URL = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def is_sqlite_database(url):
    return url is not None and url.startswith("sqlite")


def build_engine(url):
    connect_args = {"check_same_thread": False} if is_sqlite_database(url) else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
