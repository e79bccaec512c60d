"""Typer CLI — ``promptr embed``, ``promptr generate``, ``promptr history`` and friends."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from promptr.config import load_config
from promptr.output.markdown import NOT_AVAILABLE, format_similarity
from promptr.store.database import DatabaseError

# Load .env file from project root (if it exists)
load_dotenv()

app = typer.Typer(
    name="promptr",
    help="Prompt workbench — template prompts, embed and generate, and track embedding drift.",
    no_args_is_help=True,
)
console = Console()

_DEFAULT_CONFIG = Path("promptr.yml")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every HTTP request at INFO — noisy and unhelpful for users
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load(config: Path | None) -> "WorkbenchConfig":  # noqa: F821
    """Load the given config, or promptr.yml if present, or defaults."""
    if config is None and _DEFAULT_CONFIG.exists():
        config = _DEFAULT_CONFIG
    try:
        return load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)


def _workbench(config: Path | None, *, dry_run: bool = False) -> "Workbench":  # noqa: F821
    from promptr.services.workbench import Workbench
    from promptr.store.database import Database

    cfg = _load(config)
    db = Database(cfg.database_url, echo=cfg.database_echo)
    try:
        db.create_all()
    except DatabaseError as exc:
        console.print(f"[red]Database setup failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if dry_run:
        from promptr.shared.openai_client import DryRunClient
        client = DryRunClient()
    else:
        from promptr.shared.openai_client import OpenAIClient
        client = OpenAIClient()

    return Workbench(db, client, cfg)


def parse_variables(pairs: list[str]) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a dict."""
    variables: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--var")
        variables[key.strip()] = value
    return variables


def _read_prompt(prompt: str | None, prompt_file: Path | None) -> str:
    if prompt_file is not None:
        return prompt_file.read_text()
    if prompt:
        return prompt
    console.print("[red]Provide --prompt or --prompt-file.[/]")
    raise typer.Exit(code=1)


ConfigOption = typer.Option(None, "--config", "-c", help="Path to promptr.yml (defaults to ./promptr.yml if present).")
VerboseOption = typer.Option(False, "--verbose", "-v")


@app.command()
def validate(
    config: Path = typer.Option(..., "--config", "-c", help="Path to promptr.yml"),
    verbose: bool = VerboseOption,
) -> None:
    """Validate a configuration file."""
    _setup_logging(verbose)

    try:
        cfg = load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    console.print("[green]Config is valid![/]\n")
    console.print(f"  Database:        {cfg.database_url}")
    console.print(f"  Provider:        {cfg.provider}")
    console.print(f"  Deviation count: {cfg.deviation_count}")
    console.print(f"  History limit:   {cfg.history_limit}")
    console.print(f"  Model cache:     {cfg.model_cache_days} days")


@app.command("create-project")
def create_project(
    name: str = typer.Argument(..., help="Project name"),
    description: str = typer.Option(None, "--description", "-d"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Create a new project."""
    _setup_logging(verbose)
    wb = _workbench(config)
    project = wb.create_project(name, description)
    console.print(f"[green]Created project[/] {escape(project.name)}: {project.id}")


@app.command()
def projects(
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """List projects, newest first."""
    _setup_logging(verbose)
    wb = _workbench(config)

    table = Table(title="Projects")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Created")
    for p in wb.list_projects():
        table.add_row(p.id, escape(p.name), escape(p.description or ""), f"{p.created_at:%Y-%m-%d %H:%M}")
    console.print(table)


@app.command()
def models(
    refresh: bool = typer.Option(False, "--refresh", help="Re-fetch the model list from the provider."),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Use canned models (no API calls)."),
) -> None:
    """List the selectable embedding, chat and reasoning models."""
    _setup_logging(verbose)
    wb = _workbench(config, dry_run=dry_run)
    grouped = asyncio.run(wb.catalog.grouped(force_refresh=refresh))

    for category in ("embedding", "chat", "reasoning"):
        console.print(f"[bold]{category}[/]")
        for m in grouped[category]:
            console.print(f"  {m.name}  [dim]{m.id}[/]")


@app.command()
def embed(
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    model: str = typer.Option(..., "--model", "-m", help="Embedding model name or id"),
    prompt: str = typer.Option(None, "--prompt", help="Prompt template text"),
    prompt_file: Path = typer.Option(None, "--prompt-file", help="Read the template from a file"),
    var: list[str] = typer.Option([], "--var", help="Template variable as key=value (repeatable)"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Use deterministic fake embeddings (no API calls)."),
) -> None:
    """Embed a prompt template with its variables filled in."""
    from promptr.shared.templates import sync_variables

    _setup_logging(verbose)
    template = _read_prompt(prompt, prompt_file)
    variables = sync_variables(template, parse_variables(var))
    wb = _workbench(config, dry_run=dry_run)

    try:
        result = asyncio.run(wb.get_embedding(template, variables, model, project))
    except (ValueError, LookupError, DatabaseError) as exc:
        console.print(f"[red]Embedding failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    vector = result.embedding.vector
    label = "Reused embedding" if result.reused else "Stored embedding"
    console.print(f"[green]{label}[/] for prompt {result.prompt.id} ({len(vector)} dimensions)")
    console.print(f"[dim]{escape(str(vector)[:200])}…[/]")


@app.command()
def generate(
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    model: str = typer.Option(..., "--model", "-m", help="Chat or reasoning model name or id"),
    prompt: str = typer.Option(None, "--prompt", help="Prompt template text"),
    prompt_file: Path = typer.Option(None, "--prompt-file", help="Read the template from a file"),
    var: list[str] = typer.Option([], "--var", help="Template variable as key=value (repeatable)"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Use canned completions (no API calls)."),
) -> None:
    """Generate a completion for a prompt template with its variables filled in."""
    from promptr.shared.templates import sync_variables

    _setup_logging(verbose)
    template = _read_prompt(prompt, prompt_file)
    variables = sync_variables(template, parse_variables(var))
    wb = _workbench(config, dry_run=dry_run)

    def on_tokens(inp: int, out: int) -> None:
        console.print(f"[dim]Tokens: {inp:,} in / {out:,} out[/]")

    try:
        result = asyncio.run(
            wb.generate(template, variables, model, project, on_tokens=on_tokens)
        )
    except (ValueError, LookupError, DatabaseError) as exc:
        console.print(f"[red]Generation failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    console.print(f"[green]Stored generation[/] for prompt {result.prompt.id}\n")
    console.print(result.generation.output, markup=False)


@app.command()
def history(
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    limit: int = typer.Option(None, "--limit", "-n", help="Number of recent prompts (default from config)"),
    select: str = typer.Option(None, "--select", "-s", help="Show deviation tables for this prompt id"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show a project's prompt history with neighbour similarity."""
    _setup_logging(verbose)
    wb = _workbench(config)

    try:
        analysis = wb.analyze(project, limit=limit)
    except (ValueError, LookupError, DatabaseError) as exc:
        console.print(f"[red]History failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if not analysis.records:
        console.print("No prompts recorded yet.")
        return

    table = Table(title="Prompt history")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Created")
    table.add_column("Prompt", max_width=50)
    table.add_column("Prev. similarity", justify="right")
    table.add_column("Next similarity", justify="right")
    for i, r in enumerate(analysis.records):
        table.add_row(
            str(i),
            r.id,
            f"{r.created_at:%b %d %H:%M}",
            escape(r.template),
            format_similarity(r.previous_similarity),
            format_similarity(r.next_similarity),
        )
    console.print(table)

    for w in analysis.warnings:
        console.print(f"[yellow]Prompts {w.previous_index} → {w.next_index}:[/] {escape(w.message)}")

    if select:
        record = analysis.find(select)
        if record is None:
            console.print(f"[red]Prompt {escape(select)} is not in this history.[/]")
            raise typer.Exit(code=1)
        for label, deviations in (
            ("previous", record.previous_deviation),
            ("next", record.next_deviation),
        ):
            if deviations is None:
                console.print(f"Deviation from {label} prompt: [dim]{NOT_AVAILABLE}[/]")
                continue
            dev_table = Table(title=f"Deviation from {label} prompt")
            dev_table.add_column("Index", justify="right")
            dev_table.add_column("Deviation", justify="right")
            for magnitude, index in deviations:
                dev_table.add_row(str(index), f"{magnitude:.8f}")
            console.print(dev_table)


@app.command()
def report(
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    output: Path = typer.Option(Path("./output"), "--output", "-o", help="Directory for the report files"),
    limit: int = typer.Option(None, "--limit", "-n", help="Number of recent prompts (default from config)"),
    select: str = typer.Option(None, "--select", "-s", help="Only write Markdown details for this prompt id"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Write the Markdown report and HTML dashboard for a project's history."""
    from promptr.output.dashboard import render_dashboard
    from promptr.output.markdown import render_markdown_history

    _setup_logging(verbose)
    wb = _workbench(config)

    try:
        proj = wb.require_project(project)
        analysis = wb.analyze(project, limit=limit)
    except (ValueError, LookupError, DatabaseError) as exc:
        console.print(f"[red]Report failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if select and analysis.find(select) is None:
        console.print(f"[red]Prompt {escape(select)} is not in this history.[/]")
        raise typer.Exit(code=1)

    output.mkdir(parents=True, exist_ok=True)

    md_path = output / "prompt-history.md"
    md_path.write_text(render_markdown_history(proj, analysis, selected_id=select))
    console.print(f"[green]Markdown report written to:[/] {md_path}")

    html_path = output / "prompt-history.html"
    html_path.write_text(render_dashboard(proj, analysis))
    console.print(f"[green]HTML dashboard written to:[/] {html_path}")
