"""SQLAlchemy models for local SQLite storage.

Holds the locally saved service configuration (the lower-priority config
tier) and the append-only validation history per skill.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .core.models import utcnow


class Base(DeclarativeBase):
    pass


class StoredConfig(Base):
    """A saved configuration document. The API key inside is obfuscated, not encrypted."""

    __tablename__ = "stored_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ValidationRecordRow(Base):
    """One validation of a skill. Rows are only ever inserted."""

    __tablename__ = "validation_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    skill_id: Mapped[str] = mapped_column(String(200), nullable=False)
    method: Mapped[str] = mapped_column(String(50), nullable=False, default="challenge")
    score: Mapped[float] = mapped_column(Float, nullable=False)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_validation_skill_recorded", "skill_id", "recorded_at"),
    )
