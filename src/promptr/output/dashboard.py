"""Static HTML dashboard generator — renders a HistoryAnalysis to a self-contained HTML file."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from promptr.analysis.drift import similarity_series
from promptr.output.markdown import NOT_AVAILABLE, format_similarity
from promptr.schemas.drift import HistoryAnalysis
from promptr.schemas.records import Project

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# SVG viewport for the similarity chart
CHART_WIDTH = 640
CHART_HEIGHT = 120
_CHART_PAD = 8


def chart_points(values: list[float], *, width: int = CHART_WIDTH, height: int = CHART_HEIGHT) -> str:
    """Lay out similarity values (range -1..1) as an SVG polyline ``points`` string."""
    if not values:
        return ""
    inner_w = width - 2 * _CHART_PAD
    inner_h = height - 2 * _CHART_PAD
    step = inner_w / (len(values) - 1) if len(values) > 1 else 0.0
    points = []
    for i, value in enumerate(values):
        clamped = max(-1.0, min(1.0, value))
        x = _CHART_PAD + i * step
        y = _CHART_PAD + (1.0 - clamped) / 2.0 * inner_h
        points.append(f"{x:.1f},{y:.1f}")
    return " ".join(points)


def render_dashboard(
    project: Project,
    analysis: HistoryAnalysis,
    *,
    generated_at: datetime | None = None,
) -> str:
    """Render an analysed history into a self-contained HTML dashboard.

    The chart plots each prompt's similarity to its successor, with missing
    values drawn at 0; the tables show "not available" for them instead.
    """
    env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)), autoescape=True)
    env.filters["similarity"] = format_similarity
    template = env.get_template("history.html")

    records = [
        {
            "id": r.id,
            "created_at": r.created_at.strftime("%b %d, %H:%M"),
            "template": r.template,
            "dimensions": len(r.vector) if r.vector else 0,
            "previous_similarity": r.previous_similarity,
            "next_similarity": r.next_similarity,
            "previous_deviation": r.previous_deviation,
            "next_deviation": r.next_deviation,
        }
        for r in analysis.records
    ]

    return template.render(
        project=project,
        generated_at=(generated_at or datetime.now()).isoformat(timespec="seconds"),
        deviation_count=analysis.deviation_count,
        records=records,
        warnings=[w.model_dump() for w in analysis.warnings],
        chart_width=CHART_WIDTH,
        chart_height=CHART_HEIGHT,
        chart_points=chart_points(similarity_series(analysis.records)),
        not_available=NOT_AVAILABLE,
    )
