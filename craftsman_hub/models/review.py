from datetime import datetime
from typing import ClassVar, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, DocumentMixin, UpdateSchema, utcnow
from .project import Project
from .user import User


def _round_rating(value):
    return round(value * 10) / 10 if value is not None else value


class ReviewCreate(BaseModel):
    """A client's review of a craftsman for a finished project"""
    model_config = ConfigDict(extra="ignore")

    review: str = Field(..., min_length=1)
    rating: float = Field(..., ge=0, le=5)
    client_id: str
    craftsman_id: str
    project_id: str

    @field_validator("rating")
    @classmethod
    def round_rating(cls, value):
        return _round_rating(value)


class ReviewUpdate(UpdateSchema):
    model_config = ConfigDict(extra="ignore")
    not_null: ClassVar[Sequence[str]] = ("review", "rating")

    review: Optional[str] = Field(None, min_length=1)
    rating: Optional[float] = Field(None, ge=0, le=5)

    @field_validator("rating")
    @classmethod
    def round_rating(cls, value):
        return _round_rating(value)


class Review(DocumentMixin, Base):
    __tablename__ = "reviews"
    __create_schema__ = ReviewCreate
    __update_schema__ = ReviewUpdate

    review: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    client_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    craftsman_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)

    client: Mapped[User] = relationship(foreign_keys=[client_id])
    craftsman: Mapped[User] = relationship(foreign_keys=[craftsman_id])
    project: Mapped[Project] = relationship(foreign_keys=[project_id])
