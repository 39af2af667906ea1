"""
Generic Repository

Uniform CRUD + query surface over one document model. Every call opens its
own session and returns plain dicts; nothing is cached between calls.
"""

from datetime import datetime
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar
import logging
import operator
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from ..core.database_client import Database
from ..core.errors import BadRequest, InvalidId
from ..models.base import DocumentMixin

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=DocumentMixin)

_COMPARATORS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}
_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


class Repository(Generic[DocT]):
    """
    CRUD operations for a single model.

    Filters are {field: value} for equality or {field: {op: value}} with op in
    eq, ne, gt, gte, lt, lte, in. Sort entries are field names, "-" prefixed
    for descending. The version field never appears in returned documents.
    """

    def __init__(self, database: Database, model: Type[DocT]):
        self.database = database
        self.model = model

    # --- Query building ---

    def _cast_id(self, value) -> str:
        try:
            return str(uuid.UUID(str(value)))
        except ValueError:
            raise InvalidId("id", value)

    def _column(self, field: str):
        hidden = set(self.model.__hidden__) | {self.model.VERSION_FIELD}
        if field not in self.model.column_keys() or field in hidden:
            raise BadRequest(f"Invalid field: {field}")
        return getattr(self.model, field)

    def _coerce(self, field: str, column, value):
        """Cast a (usually string) query value to the column's Python type."""
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value
        if value is None or isinstance(value, python_type):
            return value

        try:
            if python_type is bool:
                text = str(value).lower()
                if text in _TRUE:
                    return True
                if text in _FALSE:
                    return False
                raise ValueError(text)
            if python_type is datetime:
                return datetime.fromisoformat(str(value))
            return python_type(value)
        except (TypeError, ValueError):
            raise InvalidId(field, value)

    def _where(self, stmt, filter: Optional[Dict[str, Any]]):
        for field, condition in (filter or {}).items():
            column = self._column(field)
            conditions = condition if isinstance(condition, dict) else {"eq": condition}
            for op, value in conditions.items():
                if op == "in":
                    values = value if isinstance(value, (list, tuple, set)) else [value]
                    stmt = stmt.where(column.in_([self._coerce(field, column, v) for v in values]))
                elif op in _COMPARATORS:
                    stmt = stmt.where(_COMPARATORS[op](column, self._coerce(field, column, value)))
                else:
                    raise BadRequest(f"Invalid operator: {op}")
        return stmt

    def _order_by(self, sort: Optional[Sequence[str]]) -> List:
        clauses = []
        for key in sort or ():
            column = self._column(key.lstrip("-"))
            clauses.append(column.desc() if key.startswith("-") else column.asc())
        # Stable tie-breaker so pagination never repeats or skips documents
        clauses.append(self.model.id.asc())
        return clauses

    def _populate_options(self, populate: Iterable[str]) -> List:
        relationships = self.model.relationship_keys()
        options = []
        for name in populate or ():
            if name not in relationships:
                # Unknown relations are ignored, not reported
                logger.debug("Ignoring unknown relation %r on %s", name, self.model.__name__)
                continue
            options.append(selectinload(getattr(self.model, name)))
        return options

    # --- Operations ---

    def get_all(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[str]] = None,
        fields: Optional[Sequence[str]] = None,
        page: int = 1,
        page_limit: int = 100,
        populate: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        """Page through documents matching filter (offset pagination)."""
        stmt = (
            self._where(select(self.model), filter)
            .order_by(*self._order_by(sort))
            .offset((page - 1) * page_limit)
            .limit(page_limit)
            .options(*self._populate_options(populate))
        )
        with self.database.session() as session:
            docs = session.scalars(stmt).all()
            return [doc.to_document(fields=fields, populate=populate) for doc in docs]

    def get_one_by_id(self, id: str, populate: Sequence[str] = ()) -> Optional[Dict[str, Any]]:
        """Fetch one document; None when no document has this id."""
        stmt = (
            select(self.model)
            .where(self.model.id == self._cast_id(id))
            .options(*self._populate_options(populate))
        )
        with self.database.session() as session:
            doc = session.scalars(stmt).first()
            return doc.to_document(populate=populate) if doc is not None else None

    def create_one(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and insert a new document.

        Raises:
            pydantic.ValidationError: If data breaks the model's create schema
            sqlalchemy.exc.IntegrityError: On a unique-constraint violation
        """
        values = self.model.validate_create(data or {})
        with self.database.session() as session:
            doc = self.model(**values)
            session.add(doc)
            session.commit()
            return doc.to_document()

    def update_one_by_id(self, id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply fields to a document after validating the merged result.

        Returns:
            The updated document, or None if no document matched at update time
        """
        doc_id = self._cast_id(id)
        with self.database.session() as session:
            doc = session.get(self.model, doc_id)
            if doc is None:
                return None
            for key, value in doc.validate_update(fields or {}).items():
                setattr(doc, key, value)
            session.commit()
            return doc.to_document()

    def delete_one_by_id(self, id: str) -> None:
        """Delete by id. Returns None whether or not a document matched."""
        with self.database.session() as session:
            session.execute(delete(self.model).where(self.model.id == self._cast_id(id)))
            session.commit()
        return None

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), filter)
        with self.database.session() as session:
            return session.scalar(stmt)

    def is_exist(self, id: str) -> bool:
        # Full read; stale as soon as it returns
        return bool(self.get_one_by_id(id))
