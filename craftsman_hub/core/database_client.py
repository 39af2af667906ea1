from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy_utils import database_exists, create_database
import logging

from ..models.base import Base
from ..models import project, review, user  # noqa: F401  registers tables on Base.metadata

logger = logging.getLogger(__name__)


class Database:
    """
    Long-lived connection to the document store.

    Built once at process start and handed to every repository. Each
    repository call opens its own short-lived Session from here.
    """

    def __init__(self, url: str, bcrypt_rounds: int = 12, echo: bool = False):
        self.url = url

        connect_args = {}
        engine_kwargs = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            # Shared in-process connection so every session sees the same data
            connect_args["check_same_thread"] = False
            engine_kwargs = {"poolclass": StaticPool}

        self.engine = create_engine(url, echo=echo, connect_args=connect_args, **engine_kwargs)

        # Session.info carries settings that mapper events need (see models.user)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            info={"bcrypt_rounds": bcrypt_rounds},
        )

    def session(self) -> Session:
        """Open a new session. Use as a context manager."""
        return self._session_factory()

    def initialize(self) -> None:
        """Create the database if necessary and ensure all tables exist."""
        if not database_exists(self.url):
            logger.info("Database not found. Creating database...")
            create_database(self.url)

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))

    def dispose(self) -> None:
        self.engine.dispose()
