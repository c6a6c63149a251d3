from fastapi import FastAPI

from security.credential_store import CredentialStore, SqlCredentialStore
from security.filter_chain import apply_security
from security.rbac import AuthorizationEngine
from security.security_config import load_access_rules

from .database import Base, SessionLocal, engine
from .employee_routes import router as employee_router


def create_app(rules=None, store: CredentialStore | None = None, create_tables: bool = False) -> FastAPI:
    """Build the API. Invalid access rules raise here, before any request is served."""
    access_engine = AuthorizationEngine(rules if rules is not None else load_access_rules())
    if store is None:
        store = SqlCredentialStore(SessionLocal)
    if create_tables:
        Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Employee Directory")
    app.state.access_engine = access_engine
    app.state.credential_store = store
    app.include_router(employee_router)
    apply_security(app, access_engine, store)
    return app


app = create_app()
