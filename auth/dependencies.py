"""
auth/dependencies.py -- FastAPI Depends() adapter for the Access Guard.

Two token sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by POST /users/login.
  2. Authorization: Bearer <token> header -- API clients.

require_role(role) builds one dependency per minimum role. The four common
ones are exported as require_reader / require_writer / require_editor /
require_admin:

    @router.delete("/locations/{location_id}")
    async def route(principal: Principal = Depends(require_admin)): ...

Auth errors from the guard become HTTPException here so the API's uniform
error envelope applies. Any token problem is the same 401 body; the 403 body
names only the required role.

Layer rule: no imports from galaxy/. auth/dependencies.py may import from
fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.errors import Forbidden, Unauthenticated
from auth.guard import AccessGuard
from auth.models import Principal, Role

ACCESS_TOKEN_COOKIE = "access_token"


def extract_token(request: Request) -> str | None:
    """Return the raw token from the cookie or Bearer header, or None."""
    token: str | None = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def require_role(required: Role) -> Callable[[Request], Principal]:
    """Return a dependency that admits callers at or above `required`.

    Raises HTTP 401 if unauthenticated, HTTP 403 if the role is too low.
    """

    def dependency(request: Request) -> Principal:
        guard: AccessGuard = request.app.state.guard
        try:
            return guard.check(extract_token(request), required)
        except Unauthenticated as exc:
            raise HTTPException(
                status_code=401,
                detail={"code": "unauthorized", "message": "Authentication required."},
                headers={"WWW-Authenticate": "Bearer", "Cache-Control": "no-store"},
            ) from exc
        except Forbidden as exc:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"{required.value} role required."},
            ) from exc

    dependency.__name__ = f"require_{required.value.lower()}"
    return dependency


require_reader = require_role(Role.READER)
require_writer = require_role(Role.WRITER)
require_editor = require_role(Role.EDITOR)
require_admin = require_role(Role.ADMIN)
