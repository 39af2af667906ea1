"""
Response Envelope

Every endpoint answers with {"ok": bool, "message": str, "payload": ...}.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import Settings

TOKEN_COOKIE = "jwt"
LOGGED_OUT_TOKEN = "none"


def envelope(ok: bool, message: str, payload: Any = None) -> dict:
    return {"ok": ok, "message": message, "payload": payload}


def json_response(status_code: int, ok: bool, message: str, payload: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(envelope(ok, message, payload)))


def cookie_expiry(settings: Settings) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=settings.jwt_cookie_expires_in)


def attach_token_cookie(response: Response, token: str, expires: datetime, settings: Settings) -> Response:
    """
    Set the bearer token as an HTTP-only cookie.

    Args:
        response: Outgoing response
        token: Signed token, or the logged-out sentinel
        expires: Timezone-aware UTC expiry
    """
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        expires=expires,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


def token_response(
    status_code: int,
    message: str,
    token: str,
    settings: Settings,
    expires: Optional[datetime] = None,
) -> JSONResponse:
    """Success envelope carrying the token in the payload and in the cookie."""
    response = json_response(status_code, True, message, {"token": token})
    return attach_token_cookie(response, token, expires or cookie_expiry(settings), settings)
