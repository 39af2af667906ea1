"""
FastAPI dependencies resolving the collaborators built by create_app.

Nothing here is a module-level singleton; everything lives on app.state.
"""

from typing import Callable, Type

from fastapi import Request

from .config import Settings
from .database_client import Database
from .mailer import Mailer
from ..models.base import DocumentMixin
from ..services.auth_service import AuthService
from ..services.repository import Repository
from ..services.user_service import UserService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def repository_for(model: Type[DocumentMixin]) -> Callable[[Request], Repository]:
    """Dependency factory yielding a Repository bound to model."""

    def get_repository(request: Request) -> Repository:
        return Repository(request.app.state.database, model)

    get_repository.__name__ = f"get_{model.__tablename__}_repository"
    return get_repository
