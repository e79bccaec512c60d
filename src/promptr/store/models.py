"""SQLAlchemy models for the prompt workbench.

Tables:
- ``projects`` — named groups of prompts
- ``models`` — provider models, cached from the provider's model list
- ``prompts`` — submitted templates with their variable values
- ``embeddings`` — vectors produced from a prompt
- ``generations`` — completions produced from a prompt
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


class ProjectRow(Base):
    __tablename__ = "promptr_projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    prompts: Mapped[list["PromptRow"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<ProjectRow(name='{self.name}')>"


class ModelRow(Base):
    __tablename__ = "promptr_models"
    __table_args__ = (
        UniqueConstraint("name", "provider", name="models_name_provider_idx"),
        Index("models_category_idx", "category"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "openai"
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # chat/embedding/reasoning/other
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<ModelRow(name='{self.name}', category='{self.category}')>"


class PromptRow(Base):
    __tablename__ = "promptr_prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    template: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    target_model_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Per-project insertion counter; orders prompts whose timestamps are equal
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    project: Mapped[ProjectRow] = relationship(back_populates="prompts")
    target_model: Mapped[ModelRow] = relationship()
    # selectin so history entries are fully loaded before the session closes
    embeddings: Mapped[list["EmbeddingRow"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="EmbeddingRow.created_at",
    )
    generations: Mapped[list["GenerationRow"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GenerationRow.created_at",
    )


class EmbeddingRow(Base):
    __tablename__ = "promptr_embeddings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    prompt_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    model_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vector: Mapped[list[float]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    prompt: Mapped[PromptRow] = relationship(back_populates="embeddings")
    model: Mapped[ModelRow] = relationship(lazy="selectin")


class GenerationRow(Base):
    __tablename__ = "promptr_generations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    prompt_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    model_id: Mapped[str] = mapped_column(
        ForeignKey("promptr_models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    output: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    generation_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    prompt: Mapped[PromptRow] = relationship(back_populates="generations")
    model: Mapped[ModelRow] = relationship(lazy="selectin")
