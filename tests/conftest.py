"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from promptr.schemas.config import WorkbenchConfig
from promptr.services.workbench import Workbench
from promptr.shared.openai_client import Completion, OpenAIClient
from promptr.store.database import Database

PROVIDER_MODELS = [
    "gpt-4o",
    "o3-mini",
    "text-embedding-3-small",
    "whisper-1",
]


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "promptr.yml"
    cfg.write_text(
        """\
database_url: "sqlite:///{db}"
deviation_count: 3
history_limit: 20
""".format(db=str(tmp_path / "test.db"))
    )
    return cfg


@pytest.fixture
def config(tmp_path: Path) -> WorkbenchConfig:
    return WorkbenchConfig(database_url=f"sqlite:///{tmp_path / 'test.db'}", deviation_count=2)


@pytest.fixture
def db(config: WorkbenchConfig) -> Database:
    """A fresh SQLite database with all tables created."""
    database = Database(config.database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def mock_openai_client() -> OpenAIClient:
    """Return an OpenAIClient with a mocked OpenAI SDK underneath."""
    client = OpenAIClient.__new__(OpenAIClient)
    client._client = AsyncMock()
    return client


@pytest.fixture
def llm_client() -> AsyncMock:
    """A stand-in provider client with canned models, vectors and completions."""
    client = AsyncMock()
    client.provider = "openai"
    client.list_models.return_value = list(PROVIDER_MODELS)
    client.embed.return_value = [0.1, 0.2, 0.3, 0.4]
    client.complete.return_value = Completion(
        text="Hello there", finish_reason="stop", usage={"prompt_tokens": 3, "completion_tokens": 2}
    )
    return client


@pytest.fixture
def workbench(db: Database, llm_client: AsyncMock, config: WorkbenchConfig) -> Workbench:
    return Workbench(db, llm_client, config)
