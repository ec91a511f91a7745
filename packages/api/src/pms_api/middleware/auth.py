# This project was developed with assistance from AI tools.
"""
JWT authentication and per-request access context.

Validates Bearer tokens issued by the auth subsystem, extracts the
principal, and builds an ``AccessContext`` (roles, scope, PII decision,
request-scoped hierarchy resolver) once per request.

Set AUTH_DISABLED=true to bypass validation (tests / local dev).
"""

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from pms_db import get_db
from pms_db.enums import RoleName
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import can_decrypt, normalize_role_names
from ..core.config import settings
from ..schemas.auth import TokenPayload, UserContext
from ..services.access import AccessContext
from ..services.hierarchy import HierarchyResolver
from ..services.roles import resolve_roles
from ..services.scope import compute_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------


def _extract_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


def _decode_token(token: str) -> TokenPayload:
    payload = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp"]},
    )
    return TokenPayload(**payload)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_DISABLED_USER = UserContext(
    user_id="00000000-0000-0000-0000-000000000000",
    email="dev@programs.local",
    name="Dev User",
    roles=(RoleName.SUPER_ADMIN.value,),
)


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: validate JWT and return UserContext.

    When AUTH_DISABLED=true, returns a dev super admin without token validation.
    """
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    token = _extract_token(request)
    if not token:
        raise _unauthorized("Missing authentication token")

    try:
        payload = _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    if not payload.principal_id:
        raise _unauthorized("Invalid token")

    cached = payload.roles or getattr(request.state, "user_roles", None)
    return UserContext(
        user_id=payload.principal_id,
        email=payload.email,
        name=payload.name,
        roles=tuple(sorted(normalize_role_names(cached))),
    )


# Type alias for use in route signatures
CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_access_context(
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AccessContext:
    """FastAPI dependency: roles -> scope -> PII decision, computed fresh per request.

    ``ScopeResolutionError`` propagates and is rendered as a generic 500.
    """
    role_names = await resolve_roles(session, user.user_id, user.roles)
    request.state.user_roles = sorted(role_names)
    entity_filter = await compute_scope(session, user.user_id, role_names)
    return AccessContext(
        user=user,
        role_names=role_names,
        entity_filter=entity_filter,
        can_decrypt=can_decrypt(role_names),
        resolver=HierarchyResolver(session),
    )


Access = Annotated[AccessContext, Depends(get_access_context)]
