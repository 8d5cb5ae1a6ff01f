"""
API request and response models for Starlane REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
galaxy/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import Principal, Role, User
from galaxy.models import Empire, Location

# Deliberately loose: one @, no whitespace, a dot in the domain part.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Names and emails are trimmed. Passwords are hashed exactly as sent, so
# request models that carry one must not enable str_strip_whitespace.
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Users -- requests
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login."""

    email: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users. role defaults to READER."""

    fullname: TrimmedStr = Field(min_length=1, max_length=100)
    email: TrimmedStr = Field(max_length=100, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=128)
    role: Role = Role.READER


class UserUpdate(BaseModel):
    """Request body for PUT /api/v1/users/{id}. Omitted fields are left unchanged."""

    fullname: Optional[TrimmedStr] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    role: Optional[Role] = None


class RoleUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/{id}/role."""

    role: Role


# ---------------------------------------------------------------------------
# Users -- responses
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: Role


class UserResponse(BaseModel):
    """Public view of a stored user. The password digest is never included."""

    model_config = ConfigDict(frozen=True)

    id: int
    fullname: str
    email: str
    role: Role
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            fullname=user.fullname,
            email=user.email,
            role=user.role,
            created_at=user.created_at or "",
        )


class MeResponse(BaseModel):
    """Identity carried by the presented token (no database lookup)."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    role: Role
    expires_at: str

    @classmethod
    def from_principal(cls, principal: Principal) -> "MeResponse":
        return cls(
            user_id=principal.user_id,
            email=principal.identifier,
            role=principal.role,
            expires_at=principal.expires_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


class LocationUpsert(BaseModel):
    """Request body for POST /locations and PUT /locations/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    star_system: str = Field(min_length=1, max_length=100)
    area: str = Field(min_length=1, max_length=100)

    def to_location(self) -> Location:
        return Location(star_system=self.star_system, area=self.area)


class LocationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    star_system: str
    area: str

    @classmethod
    def from_location(cls, location: Location) -> "LocationResponse":
        return cls(id=location.id, star_system=location.star_system, area=location.area)


# ---------------------------------------------------------------------------
# Empires
# ---------------------------------------------------------------------------


class EmpireUpsert(BaseModel):
    """Request body for POST /empires and PUT /empires/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    slogan: str = Field(min_length=1, max_length=100)
    location_id: int = Field(gt=0)
    description: str = Field(default="", max_length=5000)

    def to_empire(self) -> Empire:
        return Empire(
            name=self.name,
            slogan=self.slogan,
            location_id=self.location_id,
            description=self.description,
        )


class EmpireResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slogan: str
    location_id: int
    description: str

    @classmethod
    def from_empire(cls, empire: Empire) -> "EmpireResponse":
        return cls(
            id=empire.id,
            name=empire.name,
            slogan=empire.slogan,
            location_id=empire.location_id,
            description=empire.description,
        )
