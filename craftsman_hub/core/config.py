"""
Application Settings

Explicit configuration passed to the app factory. Use Settings.from_env() at
the process entry point; tests build Settings directly.
"""

import os
import re
from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, field_validator

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value) -> timedelta:
    """
    Parse a duration such as "90d", "12h", "30m", "45s" or a number of seconds.

    Raises:
        ValueError: If the value is not a recognised duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})


class Settings(BaseModel):
    """Runtime configuration for the account service"""

    database_url: str = "postgresql://user:password@db:5432/craftsman_hub"

    # Token signing
    secret_key: str
    algorithm: str = "HS256"
    jwt_expires_in: timedelta = timedelta(days=90)
    jwt_cookie_expires_in: int = 90  # days

    password_reset_ttl: timedelta = timedelta(minutes=10)
    mode: Literal["development", "production", "testing"] = "production"
    bcrypt_rounds: int = 12

    @field_validator("jwt_expires_in", "password_reset_ttl", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @property
    def is_development(self) -> bool:
        return self.mode == "development"

    @property
    def is_production(self) -> bool:
        return self.mode == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (JWT_SECRET is required)."""
        secret = os.getenv("JWT_SECRET")
        if not secret:
            raise RuntimeError("JWT_SECRET environment variable must be set")

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.model_fields["database_url"].default),
            secret_key=secret,
            jwt_expires_in=os.getenv("JWT_EXPIRES_IN", "90d"),
            jwt_cookie_expires_in=int(os.getenv("JWT_COOKIE_EXPIRES_IN", "90")),
            mode=os.getenv("APP_MODE", "production"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        )
