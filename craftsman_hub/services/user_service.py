from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select

from .repository import Repository
from ..core.database_client import Database
from ..models.user import User


class UserService(Repository[User]):
    """User repository: generic CRUD plus the lookups authentication needs"""

    def __init__(self, database: Database):
        super().__init__(database, User)

    def find_by_email(self, email: str, include_hidden: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
        stmt = select(User).where(User.email == email.lower())
        with self.database.session() as session:
            user = session.scalars(stmt).first()
            return user.to_document(include_hidden=include_hidden) if user is not None else None

    def find_by_reset_token(self, token_hash: str, now: datetime) -> Optional[Dict[str, Any]]:
        """Single filtered query: matching hash AND an expiry still in the future."""
        stmt = select(User).where(
            User.password_reset_token == token_hash,
            User.password_reset_expires > now,
        )
        with self.database.session() as session:
            user = session.scalars(stmt).first()
            return user.to_document() if user is not None else None

    def save(self, user_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Persist attribute changes without running the schema validators.

        A plain-text password in changes is hashed on save.

        Returns:
            The saved user, or None if the id matched nothing
        """
        with self.database.session() as session:
            user = session.get(User, self._cast_id(user_id))
            if user is None:
                return None
            for key, value in changes.items():
                setattr(user, key, value)
            session.commit()
            return user.to_document()
