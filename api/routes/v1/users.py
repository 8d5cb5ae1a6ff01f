"""
api/routes/v1/users.py -- Registration, login and user management endpoints.

Routes:
  POST   /api/v1/users              -- register (public; role defaults to READER)
  POST   /api/v1/users/login        -- password login; returns token + sets cookie
  POST   /api/v1/users/logout       -- clears cookie
  GET    /api/v1/users/me           -- identity from the token (READER)
  GET    /api/v1/users              -- list users (ADMIN)
  GET    /api/v1/users/{id}         -- user detail (ADMIN)
  PUT    /api/v1/users/{id}         -- update fullname/password/role (ADMIN)
  PATCH  /api/v1/users/{id}/role    -- change role only (ADMIN)
  DELETE /api/v1/users/{id}         -- delete user (ADMIN)

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Authenticator.login() provides timing equalization -- use it, never inline.
  Unknown email and wrong password produce the identical 401 body.
  Cache-Control: no-store on login responses; a failed login also carries
  WWW-Authenticate: Bearer like every other 401.
  An admin cannot delete their own account (no lock-out by accident).

Handlers that hash passwords are plain `def` so FastAPI runs bcrypt in the
thread pool instead of on the event loop.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RoleUpdate,
    UserResponse,
    UserUpdate,
)
from auth.authenticator import Authenticator
from auth.dependencies import ACCESS_TOKEN_COOKIE, require_admin, require_reader
from auth.errors import InvalidCredentials
from auth.models import Principal, User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("starlane.api")

# Auth policy:
# - POST   /users, /users/login, /users/logout:  public
# - GET    /users/me:                             require_reader
# - everything else under /users:                require_admin
router = APIRouter()

_NOT_FOUND = {"code": "not_found", "message": "User not found."}


def _login_rate_limit() -> str:
    """Resolved per request so a changed Settings value applies without re-import."""
    return get_settings().login_rate_limit


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account. Duplicate emails are rejected with 409."""
    if not get_settings().self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    user_store: UserStore = request.app.state.user_store
    new_user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        fullname=body.fullname,
        role=body.role,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that email already exists."},
        ) from exc

    logger.info("Registered %s (role=%s)", body.email, body.role.value)
    return UserResponse.from_user(_require_user(user_store.get_by_id(user_id)))


@router.post("/users/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the token and set the cookie.

    Returns the same generic error for unknown email and wrong password to
    avoid leaking account existence.
    """
    authenticator: Authenticator = request.app.state.authenticator
    try:
        token = authenticator.login(body.email, body.password)
    except InvalidCredentials as exc:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "invalid_credentials", "message": str(exc)}},
        )
        resp.headers["Cache-Control"] = "no-store"
        resp.headers["WWW-Authenticate"] = "Bearer"
        return resp

    principal = authenticator.authenticate(token)
    expires_in = int(authenticator.codec.ttl.total_seconds())
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=expires_in,
            role=principal.role,
        ).model_dump(mode="json"),
    )
    resp.set_cookie(
        ACCESS_TOKEN_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
        max_age=expires_in,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/users/logout")
async def logout() -> JSONResponse:
    """Clear the token cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(ACCESS_TOKEN_COOKIE)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=MeResponse)
async def me(principal: Principal = Depends(require_reader)) -> MeResponse:
    """Return the identity carried by the presented token."""
    return MeResponse.from_principal(principal)


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
async def list_users(request: Request, principal: Principal = Depends(require_admin)) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    request: Request,
    user_id: int,
    principal: Principal = Depends(require_admin),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return UserResponse.from_user(user)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    principal: Principal = Depends(require_admin),
) -> UserResponse:
    """Update a user's full name, password or role. Admin only."""
    user_store: UserStore = request.app.state.user_store

    updates: dict = {}
    if body.fullname is not None:
        updates["fullname"] = body.fullname
    if body.password is not None:
        updates["hashed_password"] = hash_password(body.password)
    if body.role is not None:
        updates["role"] = body.role
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    if not user_store.update_user(user_id, **updates):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("User %d updated by %s (fields=%s)", user_id, principal.identifier, sorted(updates))
    return UserResponse.from_user(_require_user(user_store.get_by_id(user_id)))


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_role(
    request: Request,
    user_id: int,
    body: RoleUpdate,
    principal: Principal = Depends(require_admin),
) -> UserResponse:
    """Change a user's role. Tokens already issued keep their old role until expiry."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.update_role(user_id, body.role):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("User %d role set to %s by %s", user_id, body.role.value, principal.identifier)
    return UserResponse.from_user(_require_user(user_store.get_by_id(user_id)))


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    request: Request,
    user_id: int,
    principal: Principal = Depends(require_admin),
) -> Response:
    if user_id == principal.user_id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_delete", "message": "You cannot delete your own account."},
        )
    user_store: UserStore = request.app.state.user_store
    if not user_store.delete_user(user_id):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("User %d deleted by %s", user_id, principal.identifier)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_user(user: User | None) -> User:
    if user is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "User not found after write."},
        )
    return user
