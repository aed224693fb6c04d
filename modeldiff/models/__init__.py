"""Domain models for the model diff engine."""

from modeldiff.models.diff import DiffResult

__all__ = [
    "DiffResult",
]
