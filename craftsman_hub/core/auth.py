"""
Route Protection

protect resolves the bearer token to a user; authorize gates on roles.
"""

from typing import Optional
import logging

from fastapi import Depends, Request

from .config import Settings
from .dependencies import get_settings, get_user_service
from .errors import Forbidden, Unauthenticated
from .responses import TOKEN_COOKIE
from .security import decode_access_token
from ..services.user_service import UserService

logger = logging.getLogger(__name__)


def extract_token(request: Request) -> Optional[str]:
    # The jwt cookie wins; the Authorization header is the fallback
    cookie_token = request.cookies.get(TOKEN_COOKIE)
    if cookie_token:
        return cookie_token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None
    return None


def protect(
    request: Request,
    users: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Dependency for protected routes.

    Usage in route:
        @router.get("/protected")
        def protected_route(current_user: dict = Depends(protect)):
            return {"user_id": current_user["id"]}

    Returns:
        The authenticated user document, also stored on request.state.user

    Raises:
        Unauthenticated: No token, bad token, or the user no longer exists
    """
    token = extract_token(request)
    if not token:
        raise Unauthenticated()

    payload = decode_access_token(token, settings)
    user_id = payload.get("sub")
    user = users.get_one_by_id(user_id) if user_id else None
    if user is None:
        logger.warning("Token presented for a user that no longer exists")
        raise Unauthenticated("The user belonging to this token does no longer exist.")

    request.state.user = user
    return user


def authorize(*roles: str):
    """
    Gate factory restricting a route to the given roles. Runs after protect.

    Usage:
        @router.get("/admin-only", dependencies=[Depends(authorize("admin"))])
    """

    def check_role(current_user: dict = Depends(protect)) -> dict:
        if current_user.get("role") not in roles:
            raise Forbidden()
        return current_user

    return check_role
