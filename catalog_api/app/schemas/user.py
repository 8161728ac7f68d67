"""
Pydantic models for user data.

``UserDocument`` describes what is persisted in the ``users``
collection.  The remaining schemas are request payloads and the public
projection ``UserRead``, which never exposes the password hash.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, TypeAdapter

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """Validate an email address and return it lower-cased.

    Raises ``pydantic.ValidationError`` if the address is malformed.
    """
    return _email_adapter.validate_python(value.strip()).lower()


class UserDocument(BaseModel):
    """Stored shape of a user."""

    firstname: str = Field(..., min_length=1)
    lastname: str = Field(..., min_length=1)
    email: EmailStr
    password_hash: str
    is_admin: bool = False


class UserCreate(BaseModel):
    """Registration payload.

    All fields are optional at the schema level so that the service can
    report which required field is missing with a dedicated message.
    """

    firstname: Optional[str] = Field(None, example="Ada")
    lastname: Optional[str] = Field(None, example="Lovelace")
    email: Optional[str] = Field(None, example="ada@example.com")
    password: Optional[str] = Field(None, example="strongpassword")


class UserLogin(BaseModel):
    email: str = Field(..., example="ada@example.com")
    password: str = Field(..., example="strongpassword")


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    firstname: Optional[str] = Field(None, min_length=1)
    lastname: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=1)


class AdminUserUpdate(UserUpdate):
    """Fields an administrator may change on any account."""

    is_admin: Optional[bool] = None


class UserRead(BaseModel):
    """Public projection of a user."""

    id: str
    firstname: str
    lastname: str
    email: str
    is_admin: bool = False
    token: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any], token: Optional[str] = None) -> "UserRead":
        return cls(
            id=str(document["_id"]),
            firstname=document["firstname"],
            lastname=document["lastname"],
            email=document["email"],
            is_admin=document.get("is_admin", False),
            token=token,
        )
