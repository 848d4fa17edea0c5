"""
api/routes/v1/users.py -- Users resource (all routes protected).

Routes:
  GET    /users              -- paginated list
  GET    /users/{user_id}    -- single user, served through the identity cache
  PUT    /users/{user_id}    -- update name and/or email
  DELETE /users/{user_id}    -- remove the account

Creation goes through POST /register; there is no POST /users.

Cache contract: the GET-by-id path is read-through (IDENTITY_CACHE_TTL,
default 60s). PUT and DELETE invalidate the entry inside AuthService, so a
read after a write never sees the pre-write record.

Any authenticated caller may use these routes -- there is no role model.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.models import MessageResponse, UserListResponse, UserResponse, UserUpdate
from auth.dependencies import require_auth
from auth.service import AuthService

router = APIRouter(prefix="/users", dependencies=[Depends(require_auth)])


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.get("", response_model=UserListResponse)
def list_users(
    request: Request,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> UserListResponse:
    """Return one page of users ordered by id, plus the total count."""
    users, total = _service(request).list_users(offset=offset, limit=limit)
    return UserListResponse(
        users=[UserResponse.from_user(u) for u in users],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: int) -> UserResponse:
    """Return a single user. 404 if it does not exist."""
    return UserResponse.from_user(_service(request).get_user(user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(request: Request, user_id: int, body: UserUpdate) -> UserResponse:
    """Update name and/or email. 404 unknown id, 409 email taken, 422 invalid input."""
    updated = _service(request).update_profile(user_id, name=body.name, email=body.email)
    return UserResponse.from_user(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(request: Request, user_id: int) -> MessageResponse:
    """Delete the account. Tokens already issued for it stay valid until expiry."""
    _service(request).delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
