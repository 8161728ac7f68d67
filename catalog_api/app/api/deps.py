"""
FastAPI dependencies shared by the endpoint modules.

The database handle and settings are created once at startup and kept
on ``app.state``; services are built per request around that handle.
Authentication resolves the bearer token's subject to a current user.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials

from ..core.config import Settings
from ..core.db import Database
from ..core.errors import ErrorKind
from ..core.security import bearer_scheme, decode_access_token
from ..schemas.user import UserRead
from ..services.product_service import ProductService
from ..services.user_service import UserService


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_service(
    database: Database = Depends(get_database),
    config: Settings = Depends(get_settings),
) -> UserService:
    return UserService(database, config)


def get_product_service(
    database: Database = Depends(get_database),
    config: Settings = Depends(get_settings),
) -> ProductService:
    return ProductService(database, config)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    users: UserService = Depends(get_user_service),
    config: Settings = Depends(get_settings),
) -> UserRead:
    """Return the user the bearer token was issued for.

    Raises 401 when the header is missing, the token is invalid or
    expired, or its subject no longer exists.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials, config)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    result = await users.user_profile(payload.get("sub"))
    if result.error is ErrorKind.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not result.ok:
        raise HTTPException(status_code=result.status, detail=result.message)
    return result.data


def require_admin(current_user: UserRead = Depends(get_current_user)) -> UserRead:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return current_user
