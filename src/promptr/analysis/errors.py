"""Errors raised by the embedding drift analyzer."""


class DriftError(ValueError):
    """Base class for drift analysis failures."""


class DimensionMismatch(DriftError):
    """Two vectors of unequal length were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same length: {left} != {right}")
        self.left = left
        self.right = right


class InvalidDeviationCount(DriftError):
    """More deviating dimensions were requested than the vectors have."""

    def __init__(self, requested: int, length: int) -> None:
        super().__init__(
            f"Requested {requested} deviating dimensions but vectors have length {length}"
        )
        self.requested = requested
        self.length = length


class UndefinedSimilarity(DriftError):
    """Cosine similarity is undefined because a vector has zero magnitude."""


class ResourceLimitExceeded(DriftError):
    """A batch is larger than the configured analysis limits allow."""


class NonFiniteComponent(DriftError):
    """A vector holds NaN or an infinity, so no drift value is meaningful."""

    def __init__(self, index: int, value: float) -> None:
        super().__init__(f"Vector component {index} is not finite: {value!r}")
        self.index = index
        self.value = value
