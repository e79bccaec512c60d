"""Markdown history builder — renders a HistoryAnalysis as a structured document."""

from __future__ import annotations

from datetime import datetime

from promptr.schemas.drift import AnnotatedPromptRecord, Deviation, HistoryAnalysis
from promptr.schemas.records import Project

NOT_AVAILABLE = "not available"


def format_similarity(value: float | None) -> str:
    return NOT_AVAILABLE if value is None else f"{value:.6f}"


def _excerpt(text: str, width: int = 60) -> str:
    flat = " ".join(text.split()).replace("|", "\\|")
    return flat if len(flat) <= width else flat[: width - 1] + "…"


def _render_deviation_table(deviations: list[Deviation] | None) -> list[str]:
    if deviations is None:
        return [f"*{NOT_AVAILABLE}*", ""]
    if not deviations:
        return ["*no dimensions requested*", ""]
    lines = ["| Index | Deviation |", "|------:|----------:|"]
    for magnitude, index in deviations:
        lines.append(f"| {index} | {magnitude:.8f} |")
    lines.append("")
    return lines


def _render_record_detail(record: AnnotatedPromptRecord) -> list[str]:
    lines = [f"### Prompt {record.id}\n"]
    lines.append(f"*Created: {record.created_at.isoformat()}*\n")
    if record.template:
        lines.append(f"```\n{record.template}\n```\n")
    if not record.has_vector:
        lines.append(f"Embedding: *{NOT_AVAILABLE}*\n")
        return lines

    lines.append(f"Embedding dimensions: {len(record.vector)}\n")
    lines.append(f"**Similarity to previous prompt:** {format_similarity(record.previous_similarity)}\n")
    lines.extend(_render_deviation_table(record.previous_deviation))
    lines.append(f"**Similarity to next prompt:** {format_similarity(record.next_similarity)}\n")
    lines.extend(_render_deviation_table(record.next_deviation))
    return lines


def render_markdown_history(
    project: Project,
    analysis: HistoryAnalysis,
    *,
    selected_id: str | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Render a project's analysed prompt history into a Markdown string.

    With ``selected_id`` only that prompt gets a detail section; otherwise
    every prompt does. Missing values are written as "not available".
    """
    sections: list[str] = []
    generated_at = generated_at or datetime.now()

    sections.append(f"# Prompt History: {project.name}\n")
    sections.append(f"*Generated: {generated_at.isoformat()}*\n")
    if project.description:
        sections.append(f"{project.description}\n")

    if not analysis.records:
        sections.append("No prompts recorded yet.\n")
        return "\n".join(sections)

    sections.append("## Drift Overview\n")
    sections.append(f"Top {analysis.deviation_count} deviating dimensions per neighbour.\n")
    sections.append("| # | Created | Prompt | Prev. similarity | Next similarity |")
    sections.append("|--:|---------|--------|-----------------:|----------------:|")
    for i, record in enumerate(analysis.records):
        sections.append(
            f"| {i} | {record.created_at:%b %d %H:%M} | {_excerpt(record.template)} "
            f"| {format_similarity(record.previous_similarity)} "
            f"| {format_similarity(record.next_similarity)} |"
        )
    sections.append("")

    if analysis.warnings:
        sections.append("## Warnings\n")
        for w in analysis.warnings:
            sections.append(f"- Prompts {w.previous_index} → {w.next_index} ({w.kind}): {w.message}")
        sections.append("")

    sections.append("## Prompt Details\n")
    if selected_id is not None:
        record = analysis.find(selected_id)
        if record is None:
            sections.append(f"Prompt {selected_id} is not in this history.\n")
        else:
            sections.extend(_render_record_detail(record))
    else:
        for record in analysis.records:
            sections.extend(_render_record_detail(record))

    return "\n".join(sections)
