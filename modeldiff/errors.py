"""Exception hierarchy for the model diff engine.

Every failure raised by :func:`modeldiff.diff` derives from
:class:`ModelDiffError`.  A failure aborts the whole comparison; callers must
treat it as "no diff is available" and never inspect a partially built result.
"""

from __future__ import annotations


class ModelDiffError(Exception):
    """Base class for all comparison failures.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    path:
        The result path at which the failure was detected, if known.
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class TypeMismatchError(ModelDiffError):
    """The new and old values at one location are not of the same type."""

    def __init__(self, path: str, new_type: str, old_type: str) -> None:
        super().__init__(
            f"Cannot compare values of different types at path {path!r}: "
            f"new={new_type}, old={old_type}",
            path=path,
        )
        self.new_type = new_type
        self.old_type = old_type


class InvalidAnnotationError(ModelDiffError):
    """A field annotation is malformed or not permitted on the value's shape."""


class MissingKeyFieldError(ModelDiffError):
    """The key field of a keyed sequence is absent or not exported."""


class UnsupportedKeyTypeError(ModelDiffError):
    """A key field value is not a scalar and cannot be rendered."""


class UnsupportedMapKeyTypeError(ModelDiffError):
    """A mapping key is not a scalar and cannot be rendered."""


class InvalidElementError(ModelDiffError):
    """An element of a keyed sequence is not a record."""


class DuplicateKeyError(ModelDiffError):
    """Two elements of one keyed sequence share the same key value."""


class ConfigurationError(ModelDiffError):
    """The settings loaded from the environment are invalid."""
