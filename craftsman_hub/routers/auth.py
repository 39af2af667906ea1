"""
Authentication Router

Handles registration, login, password reset/update, profile and logout
endpoints. Tokens are returned in the payload and set as the jwt cookie.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
import logging

from fastapi import APIRouter, Body, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import protect
from ..core.config import Settings
from ..core.dependencies import get_auth_service, get_mailer, get_settings
from ..core.errors import AppError, BadRequest, NotFound
from ..core.mailer import Mailer
from ..core.responses import json_response, token_response
from ..services.auth_service import AuthService
from .crud import reject_password_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

SELF_UPDATABLE_FIELDS = ("name", "email", "phone")


# Pydantic Models
class RegisterRequest(BaseModel):
    """User registration request; field rules are enforced by the User schema"""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    password_confirm: Optional[str] = Field(None, alias="passwordConfirm")
    role: Literal["client", "craftsman"] = "client"


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class PasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: Optional[str] = None
    password_confirm: Optional[str] = Field(None, alias="passwordConfirm")

    def require_both(self) -> None:
        if not self.password or not self.password_confirm:
            raise BadRequest("Please provide a password and passwordConfirm")


# Endpoints

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new user and log them in

    - **name**, **email**, **password**, **passwordConfirm**: required
    - **phone**: Egyptian mobile number
    - **role**: client (default) or craftsman
    """
    token = service.register(body.model_dump(exclude_none=True))
    return token_response(status.HTTP_201_CREATED, "User registered successfully", token, settings)


@router.post("/login")
def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    if not body.email or not body.password:
        raise BadRequest("Please provide email and password")
    token = service.login(body.email, body.password)
    return token_response(status.HTTP_200_OK, "Logged in successfully", token, settings)


@router.post("/forgot_password")
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    """
    Issue a password reset token and send the reset link out of band.

    If delivery fails the reset token is cleared again so no live token is
    left behind without a delivered secret.
    """
    if not body.email:
        raise BadRequest("Please provide an email")

    reset_token = service.forget_password(body.email)
    reset_url = f"{str(request.base_url).rstrip('/')}{router.prefix}/reset_password/{reset_token}"
    try:
        mailer.send_password_reset(body.email, reset_url)
    except Exception:
        logger.exception("Sending password reset email failed")
        service.rollback_password_reset(body.email)
        raise AppError("There was an error sending the email. Try again later!")

    payload = {"reset_token": reset_token} if settings.is_development else None
    return json_response(status.HTTP_200_OK, True, "Reset token sent to email", payload)


@router.put("/reset_password/{reset_token}")
def reset_password(
    reset_token: str,
    body: PasswordRequest,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    body.require_both()
    token = service.reset_password(reset_token, body.password, body.password_confirm)
    return token_response(status.HTTP_200_OK, "Password reset successfully", token, settings)


@router.patch("/update_me")
def update_me(
    body: Dict[str, Any] = Body(...),
    current_user: dict = Depends(protect),
    service: AuthService = Depends(get_auth_service),
):
    reject_password_fields(body)
    fields = {key: body[key] for key in SELF_UPDATABLE_FIELDS if key in body}
    user = service.update_me(current_user["id"], fields)
    if user is None:
        raise NotFound("User not found")
    return json_response(status.HTTP_200_OK, True, "User updated successfully", {"user": user})


@router.patch("/update_password")
def update_password(
    body: PasswordRequest,
    current_user: dict = Depends(protect),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    body.require_both()
    token = service.update_password(current_user["id"], body.password, body.password_confirm)
    return token_response(status.HTTP_200_OK, "Password updated successfully", token, settings)


@router.get("/me")
def get_me(current_user: dict = Depends(protect), service: AuthService = Depends(get_auth_service)):
    """Get current authenticated user information"""
    user = service.get_me(current_user["id"])
    if user is None:
        raise NotFound("User not found")
    return json_response(status.HTTP_200_OK, True, "User retrieved successfully", {"data": user})


@router.get("/logout", dependencies=[Depends(protect)])
def logout(
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Stateless logout: the cookie is overwritten with a sentinel that expires
    immediately. Issued tokens stay valid until they expire.
    """
    token = service.logout()
    return token_response(
        status.HTTP_200_OK, "Logged out successfully", token, settings,
        expires=datetime.now(timezone.utc),
    )
