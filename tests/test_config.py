"""Tests for config loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from promptr.config import load_config
from promptr.schemas.config import WorkbenchConfig


class TestWorkbenchConfig:
    """Test the WorkbenchConfig Pydantic model directly."""

    def test_defaults(self) -> None:
        cfg = WorkbenchConfig()
        assert cfg.database_url == "sqlite:///promptr.db"
        assert cfg.provider == "openai"
        assert cfg.deviation_count == 5
        assert cfg.history_limit == 10
        assert cfg.model_cache_days == 7

    def test_unsupported_provider(self) -> None:
        with pytest.raises(ValidationError, match="Unsupported provider"):
            WorkbenchConfig(provider="anthropic")

    def test_negative_deviation_count(self) -> None:
        with pytest.raises(ValidationError, match="deviation_count"):
            WorkbenchConfig(deviation_count=-1)

    def test_history_limit_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="history_limit"):
            WorkbenchConfig(history_limit=0)

    def test_record_limit_covers_history_limit(self) -> None:
        with pytest.raises(ValidationError, match="max_history_records"):
            WorkbenchConfig(history_limit=50, max_history_records=10)

    def test_dimension_limit_positive(self) -> None:
        with pytest.raises(ValidationError, match="max_dimensions"):
            WorkbenchConfig(max_dimensions=0)


class TestLoadConfig:
    """Test YAML file loading."""

    def test_load_valid_file(self, tmp_config: Path) -> None:
        cfg = load_config(tmp_config)
        assert cfg.deviation_count == 3
        assert cfg.history_limit == 20
        assert cfg.database_url.endswith("test.db")

    def test_no_path_gives_defaults(self) -> None:
        assert load_config() == WorkbenchConfig()

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/promptr.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yml"
        bad.write_text("just a string")
        with pytest.raises(ValueError, match="YAML mapping"):
            load_config(bad)

    def test_comment_only_file(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "promptr.yml"
        cfg_file.write_text("# database_url: sqlite:///other.db\n")
        assert load_config(cfg_file) == WorkbenchConfig()

    def test_invalid_values(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "promptr.yml"
        cfg_file.write_text("deviation_count: -4\n")
        with pytest.raises(ValidationError):
            load_config(cfg_file)
