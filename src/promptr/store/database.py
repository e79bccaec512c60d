"""Database access for the workbench — engine/session management and queries.

All public methods open their own session and return Pydantic schemas from
``promptr.schemas.records``, so callers never hold ORM objects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from promptr.schemas.records import (
    EmbeddingEntry,
    GenerationEntry,
    LLMModel,
    Project,
    PromptEntry,
)
from promptr.store.models import (
    Base,
    EmbeddingRow,
    GenerationRow,
    ModelRow,
    ProjectRow,
    PromptRow,
)

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database operations."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class Database:
    """Owns the SQLAlchemy engine and exposes the workbench's queries."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self._engine: Engine = create_engine(url, echo=echo)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    def create_all(self) -> None:
        """Create any missing tables."""
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Could not create tables: {exc}", exc) from exc
        logger.debug("Tables ensured on %s", self._engine.url)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise DatabaseError(f"Database operation failed: {exc}", exc) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, name: str, description: str | None = None) -> Project:
        with self.session() as s:
            row = ProjectRow(name=name, description=description)
            s.add(row)
            s.flush()
            return Project.model_validate(row)

    def list_projects(self) -> list[Project]:
        """Return all projects, newest first."""
        with self.session() as s:
            rows = s.scalars(select(ProjectRow).order_by(ProjectRow.created_at.desc()))
            return [Project.model_validate(r) for r in rows]

    def get_project(self, project_id: str) -> Project | None:
        with self.session() as s:
            row = s.get(ProjectRow, project_id)
            return Project.model_validate(row) if row else None

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def upsert_models(self, provider: str, models: list[tuple[str, str]]) -> list[LLMModel]:
        """Insert or refresh ``(name, category)`` pairs for a provider.

        Existing rows keep their id and get a new category and ``updated_at``.
        """
        now = datetime.now(timezone.utc)
        with self.session() as s:
            existing = {
                row.name: row
                for row in s.scalars(select(ModelRow).where(ModelRow.provider == provider))
            }
            stored: list[ModelRow] = []
            for name, category in models:
                row = existing.get(name)
                if row is None:
                    row = ModelRow(name=name, provider=provider, category=category)
                    s.add(row)
                else:
                    row.category = category
                    row.updated_at = now
                stored.append(row)
            s.flush()
            return [LLMModel.model_validate(r) for r in stored]

    def models_updated_since(self, provider: str, since: datetime) -> list[LLMModel]:
        with self.session() as s:
            rows = s.scalars(
                select(ModelRow)
                .where(ModelRow.provider == provider, ModelRow.updated_at >= since)
                .order_by(ModelRow.name)
            )
            return [LLMModel.model_validate(r) for r in rows]

    def get_model(self, model_id: str) -> LLMModel | None:
        with self.session() as s:
            row = s.get(ModelRow, model_id)
            return LLMModel.model_validate(row) if row else None

    def get_model_by_name(self, name: str, provider: str) -> LLMModel | None:
        with self.session() as s:
            row = s.scalars(
                select(ModelRow).where(ModelRow.name == name, ModelRow.provider == provider)
            ).first()
            return LLMModel.model_validate(row) if row else None

    # ------------------------------------------------------------------
    # Prompts, embeddings, generations
    # ------------------------------------------------------------------

    def store_prompt(
        self,
        template: str,
        variables: dict[str, str],
        target_model_id: str,
        project_id: str,
    ) -> PromptEntry:
        with self.session() as s:
            last = s.scalar(
                select(func.max(PromptRow.sequence)).where(PromptRow.project_id == project_id)
            )
            row = PromptRow(
                template=template,
                variables=dict(variables),
                target_model_id=target_model_id,
                project_id=project_id,
                sequence=(last or 0) + 1,
            )
            s.add(row)
            s.flush()
            s.refresh(row)
            return PromptEntry.model_validate(row)

    def store_embedding(self, prompt_id: str, model_id: str, vector: list[float]) -> EmbeddingEntry:
        with self.session() as s:
            row = EmbeddingRow(prompt_id=prompt_id, model_id=model_id, vector=list(vector))
            s.add(row)
            s.flush()
            s.refresh(row)
            return EmbeddingEntry.model_validate(row)

    def store_generation(
        self,
        prompt_id: str,
        model_id: str,
        output: str,
        metadata: dict[str, Any] | None = None,
    ) -> GenerationEntry:
        with self.session() as s:
            row = GenerationRow(
                prompt_id=prompt_id,
                model_id=model_id,
                output=output,
                generation_metadata=metadata or {},
            )
            s.add(row)
            s.flush()
            s.refresh(row)
            return GenerationEntry.model_validate(row)

    def prompt_history(self, project_id: str, limit: int = 10) -> list[PromptEntry]:
        """Return the ``limit`` most recent prompts, oldest first.

        Prompts with the same timestamp keep their insertion order.
        """
        with self.session() as s:
            rows = list(
                s.scalars(
                    select(PromptRow)
                    .where(PromptRow.project_id == project_id)
                    .order_by(PromptRow.created_at.desc(), PromptRow.sequence.desc())
                    .limit(limit)
                )
            )
            rows.reverse()
            return [PromptEntry.model_validate(r) for r in rows]

    def get_prompt(self, prompt_id: str) -> PromptEntry | None:
        with self.session() as s:
            row = s.get(PromptRow, prompt_id)
            return PromptEntry.model_validate(row) if row else None
