"""Model catalogue — categorise provider models and cache the list in the database."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Protocol

from promptr.schemas.records import LLMModel, ModelCategory
from promptr.store.database import Database

logger = logging.getLogger(__name__)

_REASONING_RE = re.compile(r"^o\d")


class ModelLister(Protocol):
    provider: str

    async def list_models(self) -> list[str]: ...


def categorize_model(model_id: str) -> ModelCategory:
    """Map a provider model id to a workbench category.

    ``gpt-*`` → chat, ``o1``/``o3-mini``/… → reasoning,
    ``text-embedding-*`` → embedding, anything else → other.
    """
    if model_id.startswith("gpt"):
        return "chat"
    if _REASONING_RE.match(model_id):
        return "reasoning"
    if model_id.startswith("text-embedding"):
        return "embedding"
    return "other"


class ModelCatalog:
    """Provider models, cached in the database for ``cache_days``."""

    def __init__(self, db: Database, client: ModelLister, *, cache_days: int = 7) -> None:
        self.db = db
        self.client = client
        self.cache_days = cache_days

    async def refresh(self) -> list[LLMModel]:
        """Fetch the provider's model list and upsert it."""
        ids = await self.client.list_models()
        pairs = [(model_id, categorize_model(model_id)) for model_id in ids]
        stored = self.db.upsert_models(self.client.provider, pairs)
        logger.info("Stored %d %s models", len(stored), self.client.provider)
        return stored

    async def available(self, *, force_refresh: bool = False) -> list[LLMModel]:
        """Return cached models, refreshing when none were updated recently."""
        if not force_refresh:
            cutoff = datetime.now(timezone.utc) - timedelta(days=self.cache_days)
            cached = self.db.models_updated_since(self.client.provider, cutoff)
            if cached:
                logger.debug("Using %d cached models", len(cached))
                return cached
        return await self.refresh()

    async def by_category(self, category: ModelCategory) -> list[LLMModel]:
        return [m for m in await self.available() if m.category == category]

    async def grouped(self, *, force_refresh: bool = False) -> dict[str, list[LLMModel]]:
        """Models split into the three selectable groups."""
        models = await self.available(force_refresh=force_refresh)
        return {
            category: [m for m in models if m.category == category]
            for category in ("chat", "embedding", "reasoning")
        }

    async def resolve(self, name_or_id: str) -> LLMModel | None:
        """Find a model by id, falling back to its provider name.

        Models the provider no longer lists are still found in the database,
        so prompts stored against them stay usable.
        """
        for model in await self.available():
            if name_or_id in (model.id, model.name):
                return model
        return self.db.get_model(name_or_id) or self.db.get_model_by_name(
            name_or_id, self.client.provider
        )
