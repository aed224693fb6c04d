"""Result path construction and canonical scalar rendering.

Paths are dot-separated segments.  A keyed sequence element is located with a
selector segment ``#(<key_field>==<rendered value>)``, so the full path of a
matched element looks like ``Subjects.#(Name=="Math")``.
"""

from __future__ import annotations

from typing import Any

from modeldiff.errors import UnsupportedKeyTypeError, UnsupportedMapKeyTypeError
from modeldiff.schema import is_scalar

SEPARATOR = "."

# Integral floats at or above this magnitude keep their exponent form.
_INTEGRAL_FLOAT_LIMIT = 1e21


def join_path(prefix: str, segment: str) -> str:
    """Append *segment* to *prefix*; the root path is the empty string."""
    if not prefix:
        return segment
    return f"{prefix}{SEPARATOR}{segment}"


def prefix_path(prefix: str, path: str) -> str:
    """Re-root *path* under *prefix*; an empty *path* maps to *prefix* itself."""
    if not path:
        return prefix
    return join_path(prefix, path)


def keyed_selector(path: str, key_field: str, rendered_value: str) -> str:
    """Path of the sequence element at *path* whose *key_field* renders as *rendered_value*."""
    return join_path(path, f"#({key_field}=={rendered_value})")


def render_scalar(value: Any, *, quote_strings: bool = True) -> str | None:
    """Canonical text of a scalar, or ``None`` if *value* is not a scalar."""
    if not is_scalar(value):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if value.is_integer() and abs(value) < _INTEGRAL_FLOAT_LIMIT:
            return str(int(value))
        return repr(float(value))
    text = str.__str__(value)
    return f'"{text}"' if quote_strings else text


def render_key_value(value: Any, path: str, key_field: str) -> str:
    """Render a key field value for use inside a selector."""
    rendered = render_scalar(value)
    if rendered is None:
        raise UnsupportedKeyTypeError(
            f"Key field {key_field!r} at path {path!r} has unsupported type {type(value).__name__}",
            path=path,
        )
    return rendered


def render_map_key(key: Any, path: str) -> str:
    """Render a mapping key as a path segment (strings are left bare)."""
    rendered = render_scalar(key, quote_strings=False)
    if rendered is None:
        raise UnsupportedMapKeyTypeError(
            f"Mapping at path {path!r} has key of unsupported type {type(key).__name__}",
            path=path,
        )
    return rendered
