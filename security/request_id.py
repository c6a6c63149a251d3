"""
REQUEST ID
==========
Attach a request id so access decisions can be correlated with other logs.
"""

# FLOW:
# - Middleware reuses x-request-id from the caller or generates one.
# HOW:
# - Stored on request.state.request_id and echoed in the response headers.

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip()[:128] or uuid.uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
