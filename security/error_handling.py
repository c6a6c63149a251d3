"""
ERROR HANDLING SECURITY
=======================
Return generic error messages to avoid data leakage.
"""

# FLOW:
# - Register handlers to mask error details in responses.
# HOW:
# - Generic detail per status; the Basic challenge header is kept on 401.
# - CredentialStoreUnavailable maps to 503, never to 401/403.

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from security.credential_store import CredentialStoreUnavailable

logger = logging.getLogger("security.errors")


def error_detail(status_code: int) -> str:
    if status_code == 401:
        return "Unauthorized"
    if status_code == 403:
        return "Access denied"
    if status_code == 404:
        return "Not found"
    if status_code == 503:
        return "Service unavailable"
    if status_code >= 500:
        return "An error occurred"
    return "Request failed"


def error_response(status_code: int, headers: dict | None = None) -> JSONResponse:
    return JSONResponse({"detail": error_detail(status_code)}, status_code=status_code, headers=headers)


def register_error_handlers(app):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(CredentialStoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: CredentialStoreUnavailable):
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR)
