from typing import Optional
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings
from .core.database_client import Database
from .core.errors import register_error_handlers
from .core.mailer import Mailer
from .routers import auth
from .routers.resources import projects_router, reviews_router, users_router
from .services.auth_service import AuthService
from .services.user_service import UserService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.is_development else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings,
    database: Optional[Database] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """
    Build the API around explicitly constructed collaborators.

    Args:
        settings: Runtime configuration
        database: Store adapter; built from settings.database_url if omitted
        mailer: Reset-link delivery; logs the link if omitted
    """
    if database is None:
        database = Database(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)

    app = FastAPI(title="Craftsman Hub Accounts API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    user_service = UserService(database)
    app.state.settings = settings
    app.state.database = database
    app.state.mailer = mailer or Mailer()
    app.state.user_service = user_service
    app.state.auth_service = AuthService(user_service, settings)

    if settings.is_development:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            duration = (time.perf_counter() - start) * 1000
            logger.debug("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, duration)
            return response

    register_error_handlers(app, settings)

    # Register routers
    app.include_router(auth.router)
    app.include_router(users_router)
    app.include_router(projects_router)
    app.include_router(reviews_router)

    return app
