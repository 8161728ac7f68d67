"""
Business logic for users.

``UserService`` covers registration, authentication, profile reads and
updates and the administrator operations on accounts.  Passwords are
only ever stored as PBKDF2 hashes and no projection returned from here
contains the hash.  Successful authentication and profile updates mint
a fresh signed token bound to the user id; there is no server-side
session.

Email uniqueness is checked before writing for a friendly message, and
enforced by the unique index on ``users.email`` for concurrent writers.
"""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings, settings
from ..core.db import ASCENDING, USERS, Database, Document
from ..core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from ..core.messages import INVALID_PAGINATION, UserMessages
from ..core.security import create_access_token, hash_password, verify_password
from ..schemas.user import (
    AdminUserUpdate,
    UserCreate,
    UserDocument,
    UserRead,
    UserUpdate,
    normalize_email,
)
from .base_service import CrudService, parse_payload
from .result import Result, service_operation

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    ("firstname", UserMessages.FIRSTNAME_REQUIRED),
    ("lastname", UserMessages.LASTNAME_REQUIRED),
    ("email", UserMessages.EMAIL_REQUIRED),
    ("password", UserMessages.PASSWORD_REQUIRED),
)


class UserService:
    """Service for user accounts."""

    def __init__(self, database: Database, config: Optional[Settings] = None) -> None:
        self.settings = config or settings
        self.crud = CrudService(database.collection(USERS), UserDocument, "User")

    def _issue_token(self, user: Document) -> str:
        return create_access_token({"sub": str(user["_id"])}, config=self.settings)

    @staticmethod
    def _normalize_email(email: Any) -> str:
        if not isinstance(email, str):
            raise ValidationError(UserMessages.INVALID_EMAIL)
        try:
            return normalize_email(email)
        except PydanticValidationError as exc:
            raise ValidationError(UserMessages.INVALID_EMAIL) from exc

    async def _ensure_email_free(self, email: str, user_id: Any = None) -> None:
        existing = await self.crud.find_one({"email": email})
        if existing is not None and str(existing["_id"]) != str(user_id):
            raise ConflictError(UserMessages.ALREADY_EXISTS)

    async def _apply_changes(self, user_id: Any, changes: Dict[str, Any]) -> Document:
        """Validate the changed fields, hash a new password and persist."""
        if "email" in changes:
            changes["email"] = self._normalize_email(changes["email"])
            await self._ensure_email_free(changes["email"], user_id)
        password = changes.pop("password", None)
        if password is not None:
            changes["password_hash"] = hash_password(password)
        return await self.crud.update(user_id, changes)

    @service_operation
    async def authenticate(self, email: str, password: str) -> Result:
        """Check credentials and return the user with a new token."""
        if not email or not password:
            raise UnauthorizedError(UserMessages.INVALID_CREDENTIALS)
        user = await self.crud.find_one({"email": email.strip().lower()})
        if user is None:
            raise NotFoundError(UserMessages.NOT_FOUND)
        if not verify_password(password, user.get("password_hash")):
            logger.info("Rejected credentials for user %s", user["_id"])
            raise UnauthorizedError(UserMessages.INVALID_CREDENTIALS)
        logger.info("User %s authenticated", user["_id"])
        return Result.success(
            UserRead.from_document(user, token=self._issue_token(user)),
            UserMessages.AUTHENTICATED,
        )

    @service_operation
    async def register(self, data: Union[UserCreate, Dict[str, Any]]) -> Result:
        """Create an account.

        Required fields are checked one by one so the caller learns which
        one is missing.  The password is hashed before anything is
        written.
        """
        payload = parse_payload(UserCreate, data)
        for field, message in REQUIRED_FIELDS:
            value = payload.get(field)
            if not value or not str(value).strip():
                raise ValidationError(message)
        email = self._normalize_email(payload["email"])
        await self._ensure_email_free(email)
        try:
            user = await self.crud.create({
                "firstname": payload["firstname"].strip(),
                "lastname": payload["lastname"].strip(),
                "email": email,
                "password_hash": hash_password(payload["password"]),
                "is_admin": False,
            })
        except ConflictError as exc:
            raise ConflictError(UserMessages.ALREADY_EXISTS) from exc
        logger.info("Registered user %s (%s)", user["_id"], email)
        return Result.success(
            UserRead.from_document(user, token=self._issue_token(user)),
            UserMessages.CREATED,
            status=201,
        )

    @service_operation
    async def user_profile(self, user_id: Any) -> Result:
        user = await self.crud.get_by_id(user_id)
        return Result.success(UserRead.from_document(user), UserMessages.INFORMATIONS)

    @service_operation
    async def update_user_profile(self, user_id: Any, data: Union[UserUpdate, Dict[str, Any]]) -> Result:
        """Update the caller's own profile and rotate their token."""
        changes = parse_payload(UserUpdate, data)
        user = await self._apply_changes(user_id, changes)
        logger.info("User %s updated their profile", user["_id"])
        return Result.success(
            UserRead.from_document(user, token=self._issue_token(user)),
            UserMessages.PROFILE_UPDATED,
        )

    @service_operation
    async def all_users(self, page_number: Optional[int] = None, page_size: Optional[int] = None) -> Result:
        """List users, optionally one page at a time."""
        skip = limit = 0
        if page_size is not None:
            if page_size < 1:
                raise ValidationError(INVALID_PAGINATION)
            limit = page_size
            skip = page_size * (max(page_number or 1, 1) - 1)
        users = await self.crud.find(sort=[("_id", ASCENDING)], skip=skip, limit=limit)
        return Result.success([UserRead.from_document(user) for user in users], UserMessages.COLLECTION)

    @service_operation
    async def get_user(self, user_id: Any) -> Result:
        user = await self.crud.get_by_id(user_id)
        return Result.success(UserRead.from_document(user), UserMessages.INFORMATIONS)

    @service_operation
    async def update_user(self, user_id: Any, data: Union[AdminUserUpdate, Dict[str, Any]]) -> Result:
        """Administrator update of any account, including the admin flag."""
        changes = parse_payload(AdminUserUpdate, data)
        user = await self._apply_changes(user_id, changes)
        logger.info("User %s updated by an administrator", user["_id"])
        return Result.success(UserRead.from_document(user), UserMessages.UPDATED)

    @service_operation
    async def delete_user(self, user_id: Any) -> Result:
        user = await self.crud.delete(user_id)
        logger.info("User %s deleted", user["_id"])
        return Result.success(UserRead.from_document(user), UserMessages.DELETED)
