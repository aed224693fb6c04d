"""Annotation-driven recursive comparator.

:func:`diff` walks two snapshots of the same shape in lockstep and records
every difference into a :class:`DiffResult`.  Dispatch is by the cached
:class:`~modeldiff.schema.TypeDescriptor` of the values' type:

* scalars and opaque leaves are compared with ``==``;
* unannotated sequences are compared as one opaque value;
* sequences with a key annotation are matched element by element
  (see :mod:`modeldiff.matcher`);
* records recurse into every exported field, or compare as a whole in direct
  mode;
* mappings report added, removed and changed keys.

``None`` on either side is handled before dispatch: a presence mismatch is a
change of the whole location.
"""

from __future__ import annotations

import logging
from typing import Any

from modeldiff.annotations import PLAIN, CompareMode, FieldAnnotation
from modeldiff.config import Settings, get_settings
from modeldiff.errors import (
    InvalidAnnotationError,
    ModelDiffError,
    TypeMismatchError,
    UnsupportedMapKeyTypeError,
)
from modeldiff.matcher import match_by_key
from modeldiff.models.diff import DiffResult
from modeldiff.paths import join_path, render_map_key
from modeldiff.schema import DescriptorRegistry, Shape, TypeDescriptor, same_kind
from modeldiff.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@profile_operation("modeldiff.diff")
def diff(new: Any, old: Any, *, settings: Settings | None = None) -> DiffResult:
    """Compute the structural difference between two snapshots.

    Parameters
    ----------
    new:
        The current snapshot.
    old:
        The previous snapshot.  Must be of the same type as *new*.
    settings:
        Optional settings.  When omitted, the process-wide settings from
        :func:`~modeldiff.config.get_settings` are used.

    Returns
    -------
    DiffResult
        ``Change`` maps paths to old values, ``Add`` maps paths to ``None``
        and ``Del`` maps paths to old values.

    Raises
    ------
    ModelDiffError
        On any type mismatch, invalid annotation or unusable key.  No partial
        result is returned.
    """
    comparator = Comparator(settings)
    result = DiffResult()
    try:
        comparator.compare("", PLAIN, new, old, result)
    except ModelDiffError as exc:
        logger.debug("Diff aborted at path %r: %s", exc.path, exc)
        raise

    logger.debug(
        "Diff complete: %d change(s), %d add(s), %d del(s)",
        len(result.change or {}),
        len(result.add or {}),
        len(result.delete or {}),
    )
    return result


class Comparator:
    """Recursive comparison of two values under a field annotation.

    A comparator is stateless apart from its settings and the shared
    descriptor registry; results are written to the :class:`DiffResult`
    passed to :meth:`compare`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else get_settings()
        self.registry = DescriptorRegistry.for_tag(self.settings.annotation_tag)

    def compare(
        self,
        path: str,
        annotation: FieldAnnotation,
        new: Any,
        old: Any,
        result: DiffResult,
    ) -> None:
        """Compare *new* against *old* at *path*, recording into *result*."""
        if annotation.excluded:
            return

        if new is None or old is None:
            if new is not None or old is not None:
                result.record_change(path, old)
            return

        new_type, old_type = type(new), type(old)
        if not same_kind(new_type, old_type):
            raise TypeMismatchError(path, new_type.__name__, old_type.__name__)

        descriptor = self.registry.describe(new_type)
        shape = descriptor.shape

        if shape is Shape.SCALAR or shape is Shape.OPAQUE:
            _require_plain(annotation, path, descriptor)
            if new != old:
                result.record_change(path, old)
        elif shape is Shape.SEQUENCE:
            if annotation.key_field is not None:
                match_by_key(self, path, annotation, new, old, result)
            elif new != old:
                result.record_change(path, old)
        elif shape is Shape.RECORD:
            self._compare_record(path, annotation, descriptor, new, old, result)
        elif shape is Shape.MAPPING:
            _require_plain(annotation, path, descriptor)
            self._compare_mapping(path, new, old, result)

    def equal(self, new: Any, old: Any) -> bool:
        """Deep equality: a full comparison of *new* and *old* finds nothing."""
        nested = DiffResult()
        self.compare("", PLAIN, new, old, nested)
        return nested.is_empty()

    def added_value(self, new: Any) -> Any:
        """Value stored under an ``Add`` path."""
        return new if self.settings.include_added_values else None

    # -- shapes ----------------------------------------------------------------

    def _compare_record(
        self,
        path: str,
        annotation: FieldAnnotation,
        descriptor: TypeDescriptor,
        new: Any,
        old: Any,
        result: DiffResult,
    ) -> None:
        if annotation.key_field is not None:
            raise InvalidAnnotationError(
                f"Record {descriptor.name} at path {path!r} cannot carry key field "
                f"{annotation.key_field!r}; key fields apply to sequences only",
                path=path,
            )

        if annotation.mode is CompareMode.DIRECT:
            if not self.equal(new, old):
                result.record_change(path, old)
            return

        for fd in descriptor.fields:
            if not fd.exported:
                continue
            self.compare(
                join_path(path, fd.name),
                fd.annotation,
                getattr(new, fd.name),
                getattr(old, fd.name),
                result,
            )

    def _compare_mapping(self, path: str, new: Any, old: Any, result: DiffResult) -> None:
        new_keys = _rendered_keys(path, new)
        old_keys = _rendered_keys(path, old)

        for text, key in new_keys.items():
            key_path = join_path(path, text)
            if text not in old_keys:
                result.record_add(key_path, self.added_value(new[key]))
                continue
            old_key = old_keys[text]
            if not same_kind(type(key), type(old_key)) or key != old_key:
                raise UnsupportedMapKeyTypeError(
                    f"Mapping keys {key!r} (new) and {old_key!r} (old) at path {path!r} "
                    f"both render as {text!r}",
                    path=key_path,
                )
            self.compare(key_path, PLAIN, new[key], old[old_key], result)

        for text, key in old_keys.items():
            if text not in new_keys:
                result.record_delete(join_path(path, text), old[key])


def _rendered_keys(path: str, mapping: Any) -> dict[str, Any]:
    """Map each key's rendered path segment back to the key itself."""
    keys: dict[str, Any] = {}
    for key in mapping:
        text = render_map_key(key, path)
        if text in keys:
            raise UnsupportedMapKeyTypeError(
                f"Mapping keys {keys[text]!r} and {key!r} at path {path!r} both render as {text!r}",
                path=join_path(path, text),
            )
        keys[text] = key
    return keys


def _require_plain(annotation: FieldAnnotation, path: str, descriptor: TypeDescriptor) -> None:
    if not annotation.is_plain:
        raise InvalidAnnotationError(
            f"Value of type {descriptor.name} ({descriptor.shape.value}) at path {path!r} "
            f"cannot carry annotation {annotation.to_raw()!r}",
            path=path,
        )
