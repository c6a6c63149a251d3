"""
SECURITY FILTER CHAIN
=====================
Authenticates Basic credentials and applies the access rules to every
request, including requests for routes that do not exist.

FLOW:
- Find the governing rule for (method, path).
- If credentials were sent, authenticate them against the credential store.
- Ask the authorization engine for a decision and map it to a response:
  ALLOW -> route handler, REQUIRE_AUTHENTICATION -> 401 + Basic challenge,
  DENY -> 403, store outage -> 503.

HOW:
- Store lookups and password checks block, so they run in the threadpool.
- Malformed Authorization headers count as no credentials.
- No session cookie is issued; every request carries its own credentials.
"""

from __future__ import annotations

import binascii
import logging
from base64 import b64decode
from typing import Optional

from fastapi import status
from fastapi.security import HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from security.activity_logging import log_decision, log_store_failure
from security.authentication import authenticate_user
from security.credential_store import CredentialStore, CredentialStoreUnavailable
from security.error_handling import error_response, register_error_handlers
from security.rbac import AuthorizationDecision, AuthorizationEngine, basic_challenge
from security.request_id import RequestIdMiddleware
from security.security_config import SECURITY_SETTINGS

logger = logging.getLogger("security.filter_chain")


class SecurityFilterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, engine: AuthorizationEngine, store: CredentialStore, realm: str = "Realm"):
        super().__init__(app)
        self.engine = engine
        self.store = store
        self.realm = realm

    def _credentials(self, request) -> Optional[HTTPBasicCredentials]:
        scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.lower() != "basic" or not param:
            return None
        try:
            decoded = b64decode(param, validate=True).decode("utf-8")
        except (ValueError, binascii.Error):
            logger.debug("ignoring malformed Authorization header on %s", request.url.path)
            return None
        username, separator, password = decoded.partition(":")
        if not separator:
            logger.debug("ignoring malformed Authorization header on %s", request.url.path)
            return None
        return HTTPBasicCredentials(username=username, password=password)

    async def dispatch(self, request, call_next):
        method = request.method
        path = request.url.path
        request_id = getattr(request.state, "request_id", None)

        rule = self.engine.match(method, path)
        principal = None
        if rule is not None:
            credentials = self._credentials(request)
            if credentials is not None:
                try:
                    principal = await run_in_threadpool(
                        authenticate_user, self.store, credentials.username, credentials.password
                    )
                except CredentialStoreUnavailable:
                    log_store_failure(method, path, request_id)
                    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE)

        decision = self.engine.decide(method, path, principal)
        log_decision(
            decision.value,
            method,
            path,
            principal.id if principal else None,
            rule.describe() if rule else None,
            request_id,
        )

        if decision is AuthorizationDecision.ALLOW:
            request.state.principal = principal
            return await call_next(request)
        if decision is AuthorizationDecision.REQUIRE_AUTHENTICATION:
            return error_response(
                status.HTTP_401_UNAUTHORIZED,
                headers={"WWW-Authenticate": basic_challenge(self.realm)},
            )
        return error_response(status.HTTP_403_FORBIDDEN)


def apply_security(app, engine: AuthorizationEngine, store: CredentialStore, realm: Optional[str] = None) -> None:
    """Install the filter chain; the request id middleware runs first."""
    realm = realm or SECURITY_SETTINGS["AUTH_REALM"]
    register_error_handlers(app)
    app.add_middleware(SecurityFilterMiddleware, engine=engine, store=store, realm=realm)
    app.add_middleware(RequestIdMiddleware)
