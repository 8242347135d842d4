"""SQLAlchemy models for the registered people gallery."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.utils.clock import utc_now


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class RegisteredPerson(Base):
    """A registered person with the face descriptors captured at enrollment."""

    __tablename__ = "registered_people"
    __table_args__ = (
        Index("idx_registered_people_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Identity id (uuid4 string)"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    descriptors: Mapped[List[List[float]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Face embeddings, one float array per enrollment sample"
    )
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sound_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now
    )
