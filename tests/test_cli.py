"""Tests for the Typer CLI, run against dry-run clients and a temp SQLite file."""

from __future__ import annotations

from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from promptr.cli import app, parse_variables
from promptr.config import load_config
from promptr.store.database import Database, DatabaseError

runner = CliRunner()


@pytest.fixture
def project_id(tmp_config: Path) -> str:
    db = Database(load_config(tmp_config).database_url)
    db.create_all()
    project = db.create_project("CLI project")
    db.dispose()
    return project.id


class TestParseVariables:
    def test_pairs(self) -> None:
        assert parse_variables(["a=1", "b=x=y", "c="]) == {"a": "1", "b": "x=y", "c": ""}

    def test_rejects_missing_equals(self) -> None:
        with pytest.raises(typer.BadParameter):
            parse_variables(["oops"])


class TestValidate:
    def test_valid(self, tmp_config: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(tmp_config)])
        assert result.exit_code == 0
        assert "Config is valid" in result.output

    def test_invalid(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yml"
        bad.write_text("provider: somebody-else\n")
        result = runner.invoke(app, ["validate", "--config", str(bad)])
        assert result.exit_code == 1
        assert "Config validation failed" in result.output


class TestDryRunWorkflow:
    def test_embed_generate_and_report(self, tmp_config: Path, tmp_path: Path, project_id: str) -> None:
        common = ["--config", str(tmp_config), "--project", project_id, "--dry-run"]

        first = runner.invoke(
            app,
            ["embed", *common, "--model", "text-embedding-3-small",
             "--prompt", "Describe {thing}", "--var", "thing=tides"],
        )
        assert first.exit_code == 0, first.output
        assert "Stored embedding" in first.output

        again = runner.invoke(
            app,
            ["embed", *common, "--model", "text-embedding-3-small",
             "--prompt", "Describe {thing}", "--var", "thing=tides"],
        )
        assert again.exit_code == 0, again.output
        assert "Reused embedding" in again.output

        gen = runner.invoke(
            app, ["generate", *common, "--model", "gpt-4o", "--prompt", "Say hi"]
        )
        assert gen.exit_code == 0, gen.output
        assert "Say hi" in gen.output

        hist = runner.invoke(
            app, ["history", "--config", str(tmp_config), "--project", project_id]
        )
        assert hist.exit_code == 0, hist.output

        out_dir = tmp_path / "report"
        rep = runner.invoke(
            app,
            ["report", "--config", str(tmp_config), "--project", project_id,
             "--output", str(out_dir)],
        )
        assert rep.exit_code == 0, rep.output
        markdown = (out_dir / "prompt-history.md").read_text()
        assert "# Prompt History: CLI project" in markdown
        assert "not available" in markdown
        assert (out_dir / "prompt-history.html").exists()

    def test_wrong_model_kind(self, tmp_config: Path, project_id: str) -> None:
        result = runner.invoke(
            app,
            ["embed", "--config", str(tmp_config), "--project", project_id, "--dry-run",
             "--model", "gpt-4o", "--prompt", "hi"],
        )
        assert result.exit_code == 1
        assert "Embedding failed" in result.output

    def test_unknown_project(self, tmp_config: Path) -> None:
        result = runner.invoke(
            app, ["history", "--config", str(tmp_config), "--project", "missing"]
        )
        assert result.exit_code == 1
        assert "Project not found" in result.output


class TestGenerateTokens:
    def test_prints_token_usage(self, tmp_config: Path, project_id: str) -> None:
        result = runner.invoke(
            app,
            ["generate", "--config", str(tmp_config), "--project", project_id, "--dry-run",
             "--model", "gpt-4o", "--prompt", "Say hi to {who}", "--var", "who=Ada"],
        )
        assert result.exit_code == 0, result.output
        assert "Tokens: 4 in / 0 out" in result.output


class TestDatabaseFailures:
    def test_unusable_database_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "promptr.yml"
        cfg.write_text(f'database_url: "sqlite:///{tmp_path / "missing" / "dir" / "x.db"}"\n')
        result = runner.invoke(app, ["projects", "--config", str(cfg)])
        assert result.exit_code == 1
        assert "Database setup failed" in result.output

    def test_query_failure_is_reported(
        self, tmp_config: Path, project_id: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(self: Database, *args: object, **kwargs: object) -> None:
            raise DatabaseError("Database operation failed: disk I/O error")

        monkeypatch.setattr(Database, "get_project", broken)
        result = runner.invoke(
            app, ["history", "--config", str(tmp_config), "--project", project_id]
        )
        assert result.exit_code == 1
        assert "History failed" in result.output
        assert "disk I/O error" in result.output


class TestReportSelect:
    def _embed(self, tmp_config: Path, project_id: str, text: str) -> None:
        result = runner.invoke(
            app,
            ["embed", "--config", str(tmp_config), "--project", project_id, "--dry-run",
             "--model", "text-embedding-3-small", "--prompt", text],
        )
        assert result.exit_code == 0, result.output

    def test_select_limits_details(self, tmp_config: Path, tmp_path: Path, project_id: str) -> None:
        self._embed(tmp_config, project_id, "first prompt")
        self._embed(tmp_config, project_id, "second prompt")
        db = Database(load_config(tmp_config).database_url)
        first, second = db.prompt_history(project_id)
        db.dispose()

        out_dir = tmp_path / "report"
        result = runner.invoke(
            app,
            ["report", "--config", str(tmp_config), "--project", project_id,
             "--output", str(out_dir), "--select", second.id],
        )
        assert result.exit_code == 0, result.output
        markdown = (out_dir / "prompt-history.md").read_text()
        assert f"### Prompt {second.id}" in markdown
        assert f"### Prompt {first.id}" not in markdown

    def test_select_unknown_prompt(self, tmp_config: Path, tmp_path: Path, project_id: str) -> None:
        out_dir = tmp_path / "report"
        result = runner.invoke(
            app,
            ["report", "--config", str(tmp_config), "--project", project_id,
             "--output", str(out_dir), "--select", "nope"],
        )
        assert result.exit_code == 1
        assert "not in this history" in result.output
        assert not out_dir.exists()
