"""
User endpoints for API v1.

Registration, login, the caller's own profile and the administrator
operations on accounts.  Handlers delegate to ``UserService`` and
render its result envelope.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from catalog_api.app.api.deps import get_current_user, get_user_service, require_admin
from catalog_api.app.api.responses import render
from catalog_api.app.schemas.user import AdminUserUpdate, UserCreate, UserLogin, UserRead, UserUpdate
from catalog_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/login")
async def login_user(
    credentials: UserLogin,
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    """Authenticate with email and password and receive a token."""
    return render(await users.authenticate(credentials.email, credentials.password))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def register_user(
    user: UserCreate,
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    """Register a new account and receive a token."""
    return render(await users.register(user))


@router.get("/profile")
async def get_user_profile(
    current_user: UserRead = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    return render(await users.user_profile(current_user.id))


@router.put("/profile")
async def update_user_profile(
    body: UserUpdate,
    current_user: UserRead = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    """Update the caller's profile.  A new token is returned."""
    return render(await users.update_user_profile(current_user.id, body))


@router.get("/")
async def list_users(
    page_number: Optional[int] = Query(None, alias="pageNumber", ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, le=100),
    _: UserRead = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    """List all users (administrators only)."""
    return render(await users.all_users(page_number, page_size))


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: UserRead = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    return render(await users.get_user(user_id))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: AdminUserUpdate,
    _: UserRead = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    return render(await users.update_user(user_id, body))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    _: UserRead = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> JSONResponse:
    return render(await users.delete_user(user_id))
