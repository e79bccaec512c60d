"""Persisted workbench entities as returned by the store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from promptr.shared.templates import prompt_hash

ModelCategory = Literal["chat", "embedding", "reasoning", "other"]


class Project(BaseModel):
    """A named collection of prompts."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class LLMModel(BaseModel):
    """A provider model known to the workbench."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    provider: str
    category: ModelCategory
    created_at: datetime
    updated_at: datetime


class EmbeddingEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    prompt_id: str
    model: LLMModel
    vector: list[float]
    created_at: datetime


class GenerationEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    prompt_id: str
    model: LLMModel
    output: str
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("generation_metadata", "metadata"),
    )
    created_at: datetime


class PromptEntry(BaseModel):
    """A submitted prompt with everything produced from it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    template: str
    variables: dict[str, str] = {}
    target_model_id: str
    created_at: datetime
    updated_at: datetime
    embeddings: list[EmbeddingEntry] = []
    generations: list[GenerationEntry] = []

    @property
    def hash(self) -> str:
        """Dedup key for this template + variables pair."""
        return prompt_hash(self.template, self.variables)

    @property
    def vector(self) -> list[float] | None:
        """The first stored embedding vector, if any."""
        return self.embeddings[0].vector if self.embeddings else None
