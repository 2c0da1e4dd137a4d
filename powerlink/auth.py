"""
PowerLink - Authentication Module
=================================
Shared-secret check for the power action routes.

Security model:
- One shared secret per server (no user accounts)
- Clients send it in the X-Key request header
- When auth is turned off, every request passes
- Comparison is constant time; there is no rate limiting

Failed checks raise AuthenticationFailed, which the application turns
into a bare 401 response (no body) in main.py.
"""

import logging
import secrets

from fastapi import Header, Request

from powerlink.state import ServerState

logger = logging.getLogger(__name__)

KEY_HEADER = "X-Key"


class AuthenticationFailed(Exception):
    """Raised when a protected route is called without the right X-Key."""


def key_matches(state: ServerState, provided: str | None) -> bool:
    """
    Check a client-supplied key against the current secret.

    Args:
        state:    Server state holding the secret and the auth toggle.
        provided: Value of the X-Key header as decoded by Starlette (latin-1),
                  or None if it was absent.

    Returns:
        True if auth is disabled or the key equals the secret exactly.
    """
    if not state.auth_required:
        return True
    if provided is None:
        return False
    # Back to the raw header bytes; clients send the secret as UTF-8.
    try:
        raw = provided.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return secrets.compare_digest(raw, state.password.encode("utf-8"))


def require_key(state: ServerState):
    """
    Create a FastAPI dependency that enforces the X-Key check.

    Usage in routes:
        @router.post("/power/lock", dependencies=[Depends(require_key(state))])
        async def lock(): ...

    Args:
        state: The ServerState to read the secret and auth toggle from.

    Returns:
        A FastAPI dependency function.
    """
    async def _verify(
        request: Request,
        x_key: str | None = Header(None, alias=KEY_HEADER),
    ):
        if key_matches(state, x_key):
            return True

        client = request.client.host if request.client else "unknown"
        logger.warning(
            "Rejected %s %s from %s: %s",
            request.method,
            request.url.path,
            client,
            "missing key" if x_key is None else "wrong key",
        )
        raise AuthenticationFailed()

    return _verify
