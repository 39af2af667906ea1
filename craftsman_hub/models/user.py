"""
User Model for Authentication

Handles user accounts, password hashing on save, and the password-reset pair.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar, Optional, Sequence
import re

import bcrypt
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from sqlalchemy import DateTime, String, event, inspect
from sqlalchemy.orm import Mapped, mapped_column, object_session

from .base import Base, DocumentMixin, UpdateSchema, utcnow

# Egyptian mobile numbers: 010/011/012/015 with optional 0 / +20 / 20 prefix
PHONE_RE = re.compile(r"^((\+?20)|0)?1[0125]\d{8}$")
BCRYPT_MAX_BYTES = 72


class Role(str, Enum):
    CLIENT = "client"
    CRAFTSMAN = "craftsman"
    ADMIN = "admin"


# --- Validation schemas ---

def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password cannot be longer than {BCRYPT_MAX_BYTES} bytes")
    return value


class UserFields(BaseModel):
    """Field rules shared by the create and update schemas"""
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, use_enum_values=True, validate_default=True
    )

    @field_validator("email", check_fields=False)
    @classmethod
    def _lowercase_email(cls, value):
        return value.lower() if value else value

    @field_validator("phone", check_fields=False)
    @classmethod
    def _check_phone(cls, value):
        if value is not None and not PHONE_RE.match(value):
            raise ValueError("Invalid Egyptian phone number")
        return value


class UserCreate(UserFields):
    """Full user record as accepted on creation"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    photo: str = "default.jpg"
    role: Role = Role.CLIENT
    password: str = Field(..., min_length=6, max_length=72)
    password_confirm: str = Field(..., alias="passwordConfirm", min_length=6)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("passwords are not the same")
        return self


class UserUpdate(UserFields, UpdateSchema):
    """Updatable profile fields; passwords go through the password routes"""
    not_null: ClassVar[Sequence[str]] = ("name", "email", "photo", "role")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    role: Optional[Role] = None


class PasswordUpdate(BaseModel):
    """New password pair for update/reset"""
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(..., min_length=6, max_length=72)
    password_confirm: str = Field(..., alias="passwordConfirm", min_length=6)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("passwords are not the same")
        return self


# --- ORM model ---

class User(DocumentMixin, Base):
    """User model for authentication"""
    __tablename__ = "users"
    __create_schema__ = UserCreate
    __update_schema__ = UserUpdate
    __hidden__ = (
        "password",
        "password_changed_at",
        "password_reset_token",
        "password_reset_expires",
        "created_at",
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    photo: Mapped[str] = mapped_column(String(255), default="default.jpg")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.CLIENT.value)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    password_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # Reset pair: both set or both unset
    password_reset_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _hash_password_on_save(mapper, connection, target: User):
    """Hash a newly assigned plain-text password before it reaches the table."""
    history = inspect(target).attrs.password.history
    if not history.added:
        return

    session = object_session(target)
    rounds = session.info.get("bcrypt_rounds", 12) if session is not None else 12
    target.password = hash_password(target.password, rounds)

    if history.deleted:
        # Existing user changing password; backdate so a token issued right
        # after the change is never older than the change itself
        target.password_changed_at = utcnow() - timedelta(seconds=1)
