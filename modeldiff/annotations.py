"""Per-field annotation parsing.

A field opts into a comparison policy by carrying a raw annotation string in
its metadata under the ``comparedby`` tag:

==================  ==========================================================
``""`` (absent)     recurse field by field
``"-"``             skip the field entirely
``"Name"``          sequence: match elements by sub-field ``Name``, recurse
``"Name,direct"``   sequence: match by ``Name``, compare each pair as a whole
``"direct"``        compare the field's whole value as an opaque unit
==================  ==========================================================

``",direct"`` is accepted as a spelling of ``"direct"``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum

from modeldiff.errors import InvalidAnnotationError

DEFAULT_ANNOTATION_TAG = "comparedby"
EXCLUDE_MARKER = "-"
DIRECT_OPTION = "direct"


class CompareMode(str, Enum):
    """How a value is compared once it has been located."""

    RECURSIVE = "recursive"
    DIRECT = "direct"


@dataclass(frozen=True)
class FieldAnnotation:
    """Parsed comparison policy for a single field."""

    key_field: str | None = None
    mode: CompareMode = CompareMode.RECURSIVE
    excluded: bool = False

    @property
    def is_plain(self) -> bool:
        """``True`` when the annotation carries no key field and no direct mode."""
        return self.key_field is None and self.mode is CompareMode.RECURSIVE and not self.excluded

    def to_raw(self) -> str:
        """Render the annotation back to its raw string form."""
        if self.excluded:
            return EXCLUDE_MARKER
        if self.key_field is None:
            return DIRECT_OPTION if self.mode is CompareMode.DIRECT else ""
        if self.mode is CompareMode.DIRECT:
            return f"{self.key_field},{DIRECT_OPTION}"
        return self.key_field


PLAIN = FieldAnnotation()
EXCLUDED = FieldAnnotation(excluded=True)


def parse_annotation(raw: str) -> FieldAnnotation:
    """Parse a raw annotation string into a :class:`FieldAnnotation`.

    Raises
    ------
    InvalidAnnotationError
        If the string has an unknown option, more than one option, or a key
        field name that is not a valid identifier.
    """
    if not isinstance(raw, str):
        raise InvalidAnnotationError(f"Annotation must be a string, got {type(raw).__name__}")
    return _parse(raw)


@functools.lru_cache(maxsize=512)
def _parse(raw: str) -> FieldAnnotation:
    if raw == "":
        return PLAIN
    if raw == EXCLUDE_MARKER:
        return EXCLUDED

    name, sep, option = raw.partition(",")
    if sep and option != DIRECT_OPTION:
        raise InvalidAnnotationError(f"Unknown annotation option {option!r} in {raw!r}")

    if not sep and name == DIRECT_OPTION:
        return FieldAnnotation(mode=CompareMode.DIRECT)

    if name and not name.isidentifier():
        raise InvalidAnnotationError(f"Invalid key field name {name!r} in annotation {raw!r}")

    mode = CompareMode.DIRECT if sep else CompareMode.RECURSIVE
    return FieldAnnotation(key_field=name or None, mode=mode)


def compared_by(
    key_field: str | None = None,
    *,
    direct: bool = False,
    exclude: bool = False,
    tag: str = DEFAULT_ANNOTATION_TAG,
) -> dict[str, str]:
    """Build the field metadata mapping carrying an annotation.

    Usable as ``dataclasses.field(metadata=compared_by("Name"))`` or
    ``pydantic.Field(json_schema_extra=compared_by(direct=True))``.
    """
    if exclude:
        if key_field is not None or direct:
            raise ValueError("An excluded field cannot also carry a key field or direct mode")
        return {tag: EXCLUDE_MARKER}

    annotation = FieldAnnotation(
        key_field=key_field,
        mode=CompareMode.DIRECT if direct else CompareMode.RECURSIVE,
    )
    raw = annotation.to_raw()
    # Round-trip so malformed key names fail at declaration time.
    parse_annotation(raw)
    return {tag: raw}
