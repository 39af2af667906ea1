"""
Authentication Service

Credential verification, token issuance and the password-reset lifecycle:

    none --forget_password--> requested --reset_password--> none
                                        --rollback_password_reset--> none

Only the keyed hash of a reset token is stored, next to its expiry. Nothing
here checks ownership; route dependencies decide whose id is passed in.
"""

from typing import Any, Dict
import logging

from .user_service import UserService
from ..core.config import Settings
from ..core.errors import InvalidCredentials, InvalidOrExpiredToken, NotFound
from ..core.responses import LOGGED_OUT_TOKEN
from ..core.security import (
    create_access_token,
    generate_reset_token,
    hash_reset_token,
    verify_password,
)
from ..models.base import utcnow
from ..models.user import PasswordUpdate

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserService, settings: Settings):
        self.users = users
        self.settings = settings

    def sign_token(self, user_id: str) -> str:
        return create_access_token(user_id, self.settings)

    def register(self, user_data: Dict[str, Any]) -> str:
        """Create the user (schema validation applies) and log them in."""
        user = self.users.create_one(user_data)
        logger.info("User registered: %s", user["id"])
        return self.sign_token(user["id"])

    def login(self, email: str, password: str) -> str:
        """
        Raises:
            InvalidCredentials: Same error for an unknown email and a wrong password
        """
        user = self.users.find_by_email(email, include_hidden=("password",))
        correct = verify_password(password, user["password"]) if user is not None else False
        if not correct:
            logger.warning("Login failed")
            raise InvalidCredentials()
        return self.sign_token(user["id"])

    def forget_password(self, email: str) -> str:
        """
        Issue a reset token for email.

        Returns:
            The raw token, for out-of-band delivery. Only its hash is stored.
        """
        user = self.users.find_by_email(email)
        if user is None:
            raise NotFound("There is no user with this email")

        reset_token = generate_reset_token()
        # Other field validators are skipped on purpose
        self.users.save(user["id"], {
            "password_reset_token": hash_reset_token(reset_token, self.settings),
            "password_reset_expires": utcnow() + self.settings.password_reset_ttl,
        })
        logger.info("Password reset requested for user %s", user["id"])
        return reset_token

    def rollback_password_reset(self, email: str) -> bool:
        """Clear the reset pair, used when the token could not be delivered."""
        user = self.users.find_by_email(email)
        if user is None:
            raise NotFound("There is no user with this email")
        self.users.save(user["id"], {"password_reset_token": None, "password_reset_expires": None})
        logger.info("Password reset rolled back for user %s", user["id"])
        return True

    def update_password(self, user_id: str, password: str, password_confirm: str) -> str:
        """Set a new password, clear any reset pair and issue a fresh token."""
        new_password = PasswordUpdate(password=password, password_confirm=password_confirm)
        user = self.users.save(user_id, {
            "password": new_password.password,
            "password_reset_token": None,
            "password_reset_expires": None,
        })
        if user is None:
            raise NotFound("User not found")
        return self.sign_token(user["id"])

    def reset_password(self, reset_token: str, password: str, password_confirm: str) -> str:
        """
        Raises:
            InvalidOrExpiredToken: Unknown, already used, rolled back or expired token
        """
        token_hash = hash_reset_token(reset_token, self.settings)
        user = self.users.find_by_reset_token(token_hash, utcnow())
        if user is None:
            raise InvalidOrExpiredToken()
        return self.update_password(user["id"], password, password_confirm)

    def get_me(self, user_id: str):
        return self.users.get_one_by_id(user_id)

    def update_me(self, user_id: str, fields: Dict[str, Any]):
        return self.users.update_one_by_id(user_id, fields)

    def logout(self) -> str:
        # Stateless: the caller overwrites the cookie with this sentinel
        return LOGGED_OUT_TOKEN
