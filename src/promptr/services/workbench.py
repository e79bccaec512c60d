"""Prompt workflow — embed or generate from a template, persist, and analyse history."""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel

from promptr.analysis.drift import annotate_history
from promptr.schemas.config import WorkbenchConfig
from promptr.schemas.drift import HistoryAnalysis, PromptRecord
from promptr.schemas.records import (
    EmbeddingEntry,
    GenerationEntry,
    LLMModel,
    Project,
    PromptEntry,
)
from promptr.services.catalog import ModelCatalog
from promptr.shared.openai_client import Completion, TokensCallback
from promptr.shared.templates import prompt_hash, replace_variables
from promptr.store.database import Database

logger = logging.getLogger(__name__)


class InvalidModelError(ValueError):
    """The requested model is unknown or the wrong kind for the operation."""


class ProjectNotFoundError(LookupError):
    """No project with the given id exists."""


class LLMClient(Protocol):
    provider: str

    async def list_models(self) -> list[str]: ...

    async def embed(self, *, model: str, text: str) -> list[float]: ...

    async def complete(
        self, *, model: str, text: str, on_tokens: TokensCallback | None = None
    ) -> Completion: ...


class EmbeddingResult(BaseModel):
    prompt: PromptEntry
    embedding: EmbeddingEntry
    reused: bool = False


class GenerationResult(BaseModel):
    prompt: PromptEntry
    generation: GenerationEntry


def to_prompt_records(entries: list[PromptEntry]) -> list[PromptRecord]:
    """Project history entries onto the analyzer's input shape."""
    return [
        PromptRecord(id=e.id, created_at=e.created_at, template=e.template, vector=e.vector)
        for e in entries
    ]


class Workbench:
    """Ties the store, the provider client and the drift analyzer together."""

    def __init__(self, db: Database, client: LLMClient, config: WorkbenchConfig) -> None:
        self.db = db
        self.client = client
        self.config = config
        self.catalog = ModelCatalog(db, client, cache_days=config.model_cache_days)

    # ------------------------------------------------------------------
    # Projects & history
    # ------------------------------------------------------------------

    def create_project(self, name: str, description: str | None = None) -> Project:
        project = self.db.create_project(name, description)
        logger.info("Created project %s (%s)", project.name, project.id)
        return project

    def list_projects(self) -> list[Project]:
        return self.db.list_projects()

    def require_project(self, project_id: str) -> Project:
        project = self.db.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return project

    def history(self, project_id: str, limit: int | None = None) -> list[PromptEntry]:
        """Most recent prompts for a project, oldest first."""
        self.require_project(project_id)
        return self.db.prompt_history(project_id, limit or self.config.history_limit)

    def find_matching(
        self, project_id: str, template: str, variables: dict[str, str]
    ) -> PromptEntry | None:
        """Return the latest history entry for the same template + variables."""
        target = prompt_hash(template, variables)
        for entry in reversed(self.history(project_id)):
            if entry.hash == target:
                return entry
        return None

    def analyze(
        self,
        project_id: str,
        *,
        limit: int | None = None,
        deviation_count: int | None = None,
    ) -> HistoryAnalysis:
        """Annotate a project's history with neighbour similarity and deviation."""
        entries = self.history(project_id, limit)
        n = self.config.deviation_count if deviation_count is None else deviation_count
        analysis = annotate_history(
            to_prompt_records(entries),
            n,
            max_records=self.config.max_history_records,
            max_dimensions=self.config.max_dimensions,
        )
        if analysis.warnings:
            logger.info(
                "Drift analysis for %s: %d pair(s) skipped", project_id, len(analysis.warnings)
            )
        return analysis

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    async def _require_model(self, name_or_id: str, categories: tuple[str, ...]) -> LLMModel:
        model = await self.catalog.resolve(name_or_id)
        if model is None or model.category not in categories:
            kinds = " or ".join(categories)
            raise InvalidModelError(f"Invalid {kinds} model: {name_or_id}")
        return model

    async def get_embedding(
        self,
        template: str,
        variables: dict[str, str],
        model: str,
        project_id: str,
    ) -> EmbeddingResult:
        """Embed the filled-in template, reusing a stored embedding when possible.

        If the same template + variables already has an embedding in the
        project's history, it is returned without calling the provider.
        """
        llm_model = await self._require_model(model, ("embedding",))
        self.require_project(project_id)

        match = self.find_matching(project_id, template, variables)
        if match is not None and match.embeddings:
            logger.info("Reusing embedding from prompt %s", match.id)
            return EmbeddingResult(prompt=match, embedding=match.embeddings[0], reused=True)

        prompt = self.db.store_prompt(template, variables, llm_model.id, project_id)
        vector = await self.client.embed(
            model=llm_model.name, text=replace_variables(template, variables)
        )
        embedding = self.db.store_embedding(prompt.id, llm_model.id, vector)
        stored = self.db.get_prompt(prompt.id) or prompt
        return EmbeddingResult(prompt=stored, embedding=embedding)

    async def generate(
        self,
        template: str,
        variables: dict[str, str],
        model: str,
        project_id: str,
        *,
        on_tokens: TokensCallback | None = None,
    ) -> GenerationResult:
        """Run the filled-in template through a chat or reasoning model."""
        llm_model = await self._require_model(model, ("chat", "reasoning"))
        self.require_project(project_id)

        prompt = self.db.store_prompt(template, variables, llm_model.id, project_id)
        completion = await self.client.complete(
            model=llm_model.name,
            text=replace_variables(template, variables),
            on_tokens=on_tokens,
        )
        generation = self.db.store_generation(
            prompt.id,
            llm_model.id,
            completion.text,
            {"finish_reason": completion.finish_reason, "usage": completion.usage},
        )
        stored = self.db.get_prompt(prompt.id) or prompt
        return GenerationResult(prompt=stored, generation=generation)
