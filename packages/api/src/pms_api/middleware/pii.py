# This project was developed with assistance from AI tools.
"""Response caching directives for PII-bearing responses.

Handlers call ``mark_pii_access`` after shaping beneficiary data. The
middleware then stamps the response: plaintext PII must never be stored
by a browser or intermediary cache, ciphertext-only responses carry no
caching restriction. Marking through ``request.state`` keeps every route
covered without per-route header code.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

PII_ACCESS_DECRYPT = "decrypt"
PII_ACCESS_ENCRYPTED = "encrypted"


def mark_pii_access(request: Request, decrypted: bool) -> None:
    """Record whether this request emitted plaintext PII.

    Once a request is marked ``decrypt`` it stays that way, even if a later
    part of the handler only served ciphertext.
    """
    current = getattr(request.state, "pii_access", None)
    if current == PII_ACCESS_DECRYPT:
        return
    request.state.pii_access = PII_ACCESS_DECRYPT if decrypted else PII_ACCESS_ENCRYPTED


def apply_pii_headers(response: Response, pii_access: str | None) -> Response:
    if pii_access == PII_ACCESS_DECRYPT:
        response.headers["Cache-Control"] = "no-store"
        response.headers["Pragma"] = "no-cache"
        response.headers["X-PII-Access"] = PII_ACCESS_DECRYPT
    elif pii_access == PII_ACCESS_ENCRYPTED:
        response.headers["X-PII-Access"] = PII_ACCESS_ENCRYPTED
    return response


class PIICacheControlMiddleware(BaseHTTPMiddleware):
    """Add no-store directives when ``request.state.pii_access`` is ``decrypt``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        return apply_pii_headers(response, getattr(request.state, "pii_access", None))
