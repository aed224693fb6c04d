"""Keyed sequence matching.

Elements of two sequences are paired by the value of a designated key field
rather than by position.  Each element is located in the result by a selector
path such as ``Subjects.#(Name=="Math")``.

Matching is a linear scan per element, O(n*m); keyed sequences are expected
to be short, configuration-like lists.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, NamedTuple

from modeldiff.annotations import PLAIN, CompareMode, FieldAnnotation
from modeldiff.config import DuplicateKeyPolicy
from modeldiff.errors import (
    DuplicateKeyError,
    InvalidAnnotationError,
    InvalidElementError,
    MissingKeyFieldError,
    ModelDiffError,
)
from modeldiff.models.diff import DiffResult
from modeldiff.paths import keyed_selector, prefix_path, render_key_value
from modeldiff.schema import Shape

if TYPE_CHECKING:
    from modeldiff.comparator import Comparator

logger = logging.getLogger(__name__)


class KeyedElement(NamedTuple):
    """A sequence element with its key value and the key's rendered text."""

    element: Any
    key: Any
    rendered: str


def match_by_key(
    comparator: Comparator,
    path: str,
    annotation: FieldAnnotation,
    new_seq: Sequence[Any],
    old_seq: Sequence[Any],
    result: DiffResult,
) -> None:
    """Compare two sequences element by element, pairing on ``annotation.key_field``.

    * A new element without an old counterpart is recorded under ``Add``.
    * A matched pair in direct mode is recorded under ``Change`` (old element)
      when the pair differs at all.
    * A matched pair in recursive mode is compared field by field and every
      nested path is re-keyed under the element's selector.
    * An old element without a new counterpart is recorded under ``Del``.
    """
    key_field = annotation.key_field
    if key_field is None:
        raise InvalidAnnotationError(
            f"Sequence at path {path!r} has no key field to match elements by",
            path=path,
        )

    new_elements = keyed_elements(comparator, path, key_field, new_seq)
    old_elements = keyed_elements(comparator, path, key_field, old_seq)

    if comparator.settings.duplicate_keys is DuplicateKeyPolicy.REJECT:
        _reject_duplicates(path, key_field, new_elements)
        _reject_duplicates(path, key_field, old_elements)

    for entry in new_elements:
        selector = keyed_selector(path, key_field, entry.rendered)
        match = _find(old_elements, entry.rendered)

        if match is None:
            result.record_add(selector, comparator.added_value(entry.element))
            continue

        try:
            if annotation.mode is CompareMode.DIRECT:
                if not comparator.equal(entry.element, match.element):
                    result.record_change(selector, match.element)
            else:
                nested = DiffResult()
                comparator.compare("", PLAIN, entry.element, match.element, nested)
                result.merge_prefixed(selector, nested)
        except ModelDiffError as exc:
            # Nested errors carry element-relative paths.
            exc.path = prefix_path(selector, exc.path or "")
            raise

    for entry in old_elements:
        if _find(new_elements, entry.rendered) is None:
            result.record_delete(keyed_selector(path, key_field, entry.rendered), entry.element)

    logger.debug(
        "Matched %d new against %d old element(s) by %s at %r",
        len(new_elements),
        len(old_elements),
        key_field,
        path,
    )


def keyed_elements(
    comparator: Comparator,
    path: str,
    key_field: str,
    seq: Sequence[Any],
) -> list[KeyedElement]:
    """Resolve the key of every element of *seq*.

    Raises
    ------
    InvalidElementError
        If an element is not a record.
    MissingKeyFieldError
        If the key field is absent from, or not exported by, an element.
    UnsupportedKeyTypeError
        If a key value is not a scalar.
    """
    entries: list[KeyedElement] = []
    for index, element in enumerate(seq):
        descriptor = comparator.registry.describe(type(element))
        if descriptor.shape is not Shape.RECORD:
            raise InvalidElementError(
                f"Element {index} at path {path!r} is a {descriptor.name}; "
                f"matching by {key_field!r} requires records",
                path=path,
            )

        fd = descriptor.field(key_field)
        if fd is None or not fd.exported:
            raise MissingKeyFieldError(
                f"{descriptor.name} at path {path!r} has no exported key field {key_field!r}",
                path=path,
            )

        key = getattr(element, key_field)
        entries.append(KeyedElement(element, key, render_key_value(key, path, key_field)))
    return entries


def _find(entries: list[KeyedElement], rendered: str) -> KeyedElement | None:
    """First entry whose key renders as *rendered*."""
    for entry in entries:
        if entry.rendered == rendered:
            return entry
    return None


def _reject_duplicates(path: str, key_field: str, entries: list[KeyedElement]) -> None:
    seen: set[str] = set()
    for entry in entries:
        if entry.rendered in seen:
            raise DuplicateKeyError(
                f"Duplicate {key_field}=={entry.rendered} in sequence at path {path!r}",
                path=path,
            )
        seen.add(entry.rendered)
