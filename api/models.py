"""
API request and response models for the users API.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only bound payload size; the real shape rules (name length,
email format, password length) live in auth/service.py so the CLI and the API
enforce the same policy and report it through the same ValidationError.

No response model declares hashed_password. Building a response from a User
therefore cannot leak the credential, whatever the route does.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    password: str = Field(max_length=1024)


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    email: str = Field(max_length=320)
    password: str = Field(max_length=1024)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /change-password.

    newPassword is the wire name; populate_by_name lets Python callers use
    new_password as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(max_length=320)
    password: str = Field(max_length=1024)
    new_password: str = Field(alias="newPassword", max_length=1024)


class UserUpdate(BaseModel):
    """Request body for PUT /users/{user_id}. At least one field is required."""

    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user -- never includes the credential hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Factory Method: the User -> wire mapping lives next to the wire model."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class LoginResponse(BaseModel):
    """Response for POST /login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ProfileResponse(BaseModel):
    """Response for GET /profile -- built from token claims only."""

    model_config = ConfigDict(frozen=True)

    message: str
    user_id: int


class UserListResponse(BaseModel):
    """Response for GET /users."""

    model_config = ConfigDict(frozen=True)

    users: list[UserResponse]
    total: int
    offset: int
    limit: int


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    detail is a string for framework errors and a list of
    {"field", "message"} dicts for input validation failures.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
