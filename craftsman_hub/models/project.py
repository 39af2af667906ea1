from typing import ClassVar, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, DocumentMixin, UpdateSchema
from .user import User


class ProjectCreate(BaseModel):
    """A client's job posting"""
    model_config = ConfigDict(extra="ignore")

    client_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    photos: List[str] = []


class ProjectUpdate(UpdateSchema):
    model_config = ConfigDict(extra="ignore")
    not_null: ClassVar[Sequence[str]] = ("title", "description", "photos")

    client_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    photos: Optional[List[str]] = None


class Project(DocumentMixin, Base):
    __tablename__ = "projects"
    __create_schema__ = ProjectCreate
    __update_schema__ = ProjectUpdate

    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    photos: Mapped[list] = mapped_column(JSON, default=list)

    client: Mapped[Optional[User]] = relationship(foreign_keys=[client_id])
