"""Configuration schema — validates promptr.yml."""

from pydantic import BaseModel, model_validator


class WorkbenchConfig(BaseModel):
    """Top-level configuration loaded from promptr.yml.

    Every field has a default, so an empty file (or no file at all) gives a
    working local setup backed by ``promptr.db`` in the current directory.
    """

    # Storage
    database_url: str = "sqlite:///promptr.db"
    database_echo: bool = False

    # Provider — only "openai" is supported for now
    provider: str = "openai"

    # Drift analysis
    deviation_count: int = 5  # top-N deviating dimensions per neighbour
    history_limit: int = 10  # most recent prompts loaded per project

    # Model list is re-fetched from the provider when older than this
    model_cache_days: int = 7

    # Per-request analysis bounds
    max_history_records: int = 1_000
    max_dimensions: int = 8_192

    @model_validator(mode="after")
    def check_provider(self) -> "WorkbenchConfig":
        if self.provider != "openai":
            raise ValueError(f"Unsupported provider: {self.provider!r} (expected 'openai')")
        return self

    @model_validator(mode="after")
    def check_counts(self) -> "WorkbenchConfig":
        if self.deviation_count < 0:
            raise ValueError("deviation_count must be non-negative")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if self.model_cache_days < 0:
            raise ValueError("model_cache_days must be non-negative")
        return self

    @model_validator(mode="after")
    def check_limits(self) -> "WorkbenchConfig":
        if self.max_history_records < self.history_limit:
            raise ValueError(
                "max_history_records must be at least history_limit "
                f"({self.max_history_records} < {self.history_limit})"
            )
        if self.max_dimensions < 1:
            raise ValueError("max_dimensions must be at least 1")
        return self
