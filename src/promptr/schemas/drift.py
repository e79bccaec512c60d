"""Drift analysis models — prompt records in, annotated records and warnings out."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, NamedTuple

from pydantic import BaseModel


class Deviation(NamedTuple):
    """Absolute difference between two vectors at one dimension."""

    magnitude: float
    index: int


class PromptRecord(BaseModel):
    """One prompt in a project's history, with at most one embedding vector."""

    id: str
    created_at: datetime
    template: str = ""
    vector: list[float] | None = None

    @property
    def has_vector(self) -> bool:
        return bool(self.vector)


class AnnotatedPromptRecord(PromptRecord):
    """A PromptRecord plus its drift relative to its neighbours.

    ``None`` means "not computed" — there was no neighbour with a usable
    vector, or the pair failed validation. It never stands for zero drift.
    """

    previous_similarity: float | None = None
    next_similarity: float | None = None
    previous_deviation: list[Deviation] | None = None
    next_deviation: list[Deviation] | None = None


WarningKind = Literal[
    "dimension_mismatch",
    "invalid_deviation_count",
    "undefined_similarity",
    "non_finite_component",
]


class DriftWarning(BaseModel):
    """A neighbouring pair whose drift could not be computed."""

    previous_index: int
    next_index: int
    kind: WarningKind
    message: str


class HistoryAnalysis(BaseModel):
    """Result of annotating an ordered prompt history."""

    records: list[AnnotatedPromptRecord] = []
    warnings: list[DriftWarning] = []
    deviation_count: int = 5

    def find(self, record_id: str) -> AnnotatedPromptRecord | None:
        """Return the annotated record with the given id, if present."""
        for record in self.records:
            if record.id == record_id:
                return record
        return None
