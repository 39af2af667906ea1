"""
Document Base

Every entity served by the generic repository is a declarative model mixing
in DocumentMixin: a stable uuid identifier, an internal version counter that
is never serialized, and pydantic schemas used to validate writes.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Iterable, Optional, Sequence, Type
import uuid

from pydantic import BaseModel, model_validator
from sqlalchemy import Integer, String, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC wall-clock time, the format stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class UpdateSchema(BaseModel):
    """
    Base for update schemas. Every field is optional, but the names in
    not_null may not be set to an explicit null.
    """

    not_null: ClassVar[Sequence[str]] = ()

    @model_validator(mode="before")
    @classmethod
    def _reject_nulls(cls, data):
        if isinstance(data, dict):
            nulls = [name for name in cls.not_null if name in data and data[name] is None]
            if nulls:
                raise ValueError(f"{', '.join(nulls)} may not be null")
        return data


class DocumentMixin:
    """Identifier, version counter and validation hooks shared by all documents"""

    VERSION_FIELD: ClassVar[str] = "version"

    # Pydantic schemas validating create payloads and merged update results
    __create_schema__: ClassVar[Type[BaseModel]]
    __update_schema__: ClassVar[Type[BaseModel]]

    # Attributes left out of serialized documents unless explicitly requested
    __hidden__: ClassVar[Sequence[str]] = ()

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    @declared_attr
    def version(cls) -> Mapped[int]:
        return mapped_column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> Dict[str, Any]:
        return {"version_id_col": cls.version}

    @classmethod
    def column_keys(cls) -> Sequence[str]:
        return [attr.key for attr in inspect(cls).column_attrs]

    @classmethod
    def relationship_keys(cls) -> Sequence[str]:
        return list(inspect(cls).relationships.keys())

    @classmethod
    def validate_create(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a create payload against the create schema.

        Returns:
            Column values ready for the model constructor

        Raises:
            pydantic.ValidationError: If the payload breaks a schema rule
        """
        validated = cls.__create_schema__.model_validate(data)
        columns = set(cls.column_keys()) - {"id", cls.VERSION_FIELD}
        return {k: v for k, v in validated.model_dump().items() if k in columns}

    def validate_update(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate the document as it would look after applying fields.

        Keys unknown to the update schema are dropped.
        """
        schema = self.__update_schema__
        merged = {**self.to_document(), **fields}
        validated = schema.model_validate(merged).model_dump()
        return {k: validated[k] for k in fields if k in schema.model_fields}

    def to_document(
        self,
        fields: Optional[Iterable[str]] = None,
        populate: Iterable[str] = (),
        include_hidden: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """
        Serialize to a plain dict.

        Args:
            fields: Projection; names to keep, or "-name" to drop. "id" is
                always kept unless dropped explicitly.
            populate: Loaded relationships to embed as nested documents
            include_hidden: Hidden attributes to include anyway

        The version field is never part of the result.
        """
        hidden = set(self.__hidden__) - set(include_hidden)
        keys = [k for k in self.column_keys() if k != self.VERSION_FIELD and k not in hidden]

        fields = list(fields or [])
        included = [f for f in fields if not f.startswith("-")]
        excluded = {f[1:] for f in fields if f.startswith("-")}
        if included:
            keys = [k for k in keys if k in included or k == "id"]
        keys = [k for k in keys if k not in excluded]

        doc = {k: getattr(self, k) for k in keys}

        state = inspect(self)
        for name in populate:
            if name not in self.relationship_keys() or name in state.unloaded:
                continue
            related = getattr(self, name)
            if related is None:
                doc[name] = None
            elif isinstance(related, list):
                doc[name] = [item.to_document() for item in related]
            else:
                doc[name] = related.to_document()
        return doc

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id})>"
