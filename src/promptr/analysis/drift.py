"""Embedding drift analysis — similarity and per-dimension deviation between
neighbouring prompts in a project's history.

Everything here is a pure function over its inputs: no I/O, no shared state,
and inputs are never mutated, so callers may run analyses concurrently.
"""

from __future__ import annotations

import heapq
import logging
import math
from typing import Sequence

from promptr.analysis.errors import (
    DimensionMismatch,
    InvalidDeviationCount,
    NonFiniteComponent,
    ResourceLimitExceeded,
    UndefinedSimilarity,
)
from promptr.schemas.drift import (
    AnnotatedPromptRecord,
    Deviation,
    DriftWarning,
    HistoryAnalysis,
    PromptRecord,
)

logger = logging.getLogger(__name__)

_WARNING_KINDS = {
    DimensionMismatch: "dimension_mismatch",
    InvalidDeviationCount: "invalid_deviation_count",
    UndefinedSimilarity: "undefined_similarity",
    NonFiniteComponent: "non_finite_component",
}


def _check_lengths(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))


def _check_finite(v: Sequence[float]) -> None:
    for i, x in enumerate(v):
        if not math.isfinite(x):
            raise NonFiniteComponent(i, x)


def _unit(v: Sequence[float]) -> list[float]:
    # Components are rescaled into [-1, 1] first; the norm stays within float range.
    scale = max((abs(x) for x in v), default=0.0)
    if scale == 0.0:
        raise UndefinedSimilarity(
            "Cosine similarity is undefined for a zero-magnitude vector"
        )
    scaled = [x / scale for x in v]
    norm = math.hypot(*scaled)
    return [x / norm for x in scaled]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (|a| * |b|) using the Euclidean norm.

    Raises ``DimensionMismatch`` for vectors of unequal length,
    ``NonFiniteComponent`` for NaN or infinite components and
    ``UndefinedSimilarity`` when either vector has zero magnitude. The
    result is always finite and within [-1, 1].
    """
    _check_lengths(a, b)
    _check_finite(a)
    _check_finite(b)

    unit_a = _unit(a)
    unit_b = _unit(b)
    dot = math.fsum(x * y for x, y in zip(unit_a, unit_b))
    return max(-1.0, min(1.0, dot))


def top_deviating_dimensions(
    a: Sequence[float], b: Sequence[float], n: int
) -> list[Deviation]:
    """Return the ``n`` dimensions where ``a`` and ``b`` differ the most.

    Entries are ``(|a[i] - b[i]|, i)`` sorted by magnitude descending. Equal
    magnitudes are ordered by ascending index, so the result is identical for
    identical inputs and does not depend on argument order.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    _check_lengths(a, b)
    if n > len(a):
        raise InvalidDeviationCount(n, len(a))
    _check_finite(a)
    _check_finite(b)

    deviations = (Deviation(abs(x - y), i) for i, (x, y) in enumerate(zip(a, b)))
    return heapq.nsmallest(n, deviations, key=lambda d: (-d.magnitude, d.index))


def annotate_history(
    records: Sequence[PromptRecord],
    n: int,
    *,
    max_records: int | None = None,
    max_dimensions: int | None = None,
) -> HistoryAnalysis:
    """Annotate each record with its drift from the previous and next record.

    Neighbours are defined by position in ``records`` (expected in ascending
    creation order). A pair is only compared when both records carry a
    non-empty vector. If a pair fails (mismatched dimensions, ``n`` larger
    than the vectors, zero-magnitude or non-finite vector) its fields stay
    ``None`` on both records and a ``DriftWarning`` is collected instead of
    raising.

    Raises ``ValueError`` for negative ``n`` and ``ResourceLimitExceeded``
    when the batch exceeds ``max_records`` or ``max_dimensions``.
    """
    if n < 0:
        raise ValueError(f"Deviation count must be non-negative, got {n}")
    if max_records is not None and len(records) > max_records:
        raise ResourceLimitExceeded(
            f"History has {len(records)} records, limit is {max_records}"
        )
    if max_dimensions is not None:
        for record in records:
            if record.vector and len(record.vector) > max_dimensions:
                raise ResourceLimitExceeded(
                    f"Record {record.id} has {len(record.vector)} dimensions, "
                    f"limit is {max_dimensions}"
                )

    base_fields = set(PromptRecord.model_fields)
    annotated = [
        AnnotatedPromptRecord(**record.model_dump(include=base_fields))
        for record in records
    ]
    warnings: list[DriftWarning] = []

    for i in range(len(annotated) - 1):
        prev, cur = annotated[i], annotated[i + 1]
        if not (prev.has_vector and cur.has_vector):
            continue

        try:
            similarity = cosine_similarity(cur.vector, prev.vector)
            deviation = top_deviating_dimensions(cur.vector, prev.vector, n)
        except (
            DimensionMismatch,
            InvalidDeviationCount,
            NonFiniteComponent,
            UndefinedSimilarity,
        ) as exc:
            logger.warning(
                "Skipping drift between records %d (%s) and %d (%s): %s",
                i, prev.id, i + 1, cur.id, exc,
            )
            warnings.append(DriftWarning(
                previous_index=i,
                next_index=i + 1,
                kind=_WARNING_KINDS[type(exc)],
                message=str(exc),
            ))
            continue

        prev.next_similarity = similarity
        prev.next_deviation = deviation
        cur.previous_similarity = similarity
        cur.previous_deviation = list(deviation)

    return HistoryAnalysis(records=annotated, warnings=warnings, deviation_count=n)


def similarity_series(
    records: Sequence[AnnotatedPromptRecord], neutral: float = 0.0
) -> list[float]:
    """Map each record's next-neighbour similarity to a chart value.

    Absent similarities become ``neutral``; use the records themselves (not
    this series) anywhere "not available" must be distinguishable from a value.
    """
    return [
        r.next_similarity if r.next_similarity is not None else neutral
        for r in records
    ]
