"""Type descriptors: per-type shape and field annotations, resolved once.

The comparator never inspects a record class's fields directly.  Instead it
asks the :class:`DescriptorRegistry` for a :class:`TypeDescriptor`, which is
built the first time a type is seen and cached for as long as the type is
alive.  Field annotations are parsed at that point, so a malformed
annotation fails the first comparison that reaches its type.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import weakref
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from modeldiff.annotations import DEFAULT_ANNOTATION_TAG, FieldAnnotation, parse_annotation
from modeldiff.errors import InvalidAnnotationError

logger = logging.getLogger(__name__)

SCALAR_TYPES: tuple[type, ...] = (bool, int, float, str)


class Shape(str, Enum):
    """Structural category of a value."""

    SCALAR = "scalar"
    OPTIONAL = "optional"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    RECORD = "record"
    OPAQUE = "opaque"


def is_scalar_type(tp: type) -> bool:
    """Return ``True`` for bool, int, float and str (and their non-enum subclasses)."""
    return issubclass(tp, SCALAR_TYPES) and not issubclass(tp, Enum)


def is_scalar(value: Any) -> bool:
    return is_scalar_type(type(value))


def is_number_type(tp: type) -> bool:
    """Return ``True`` for int and float (and their subclasses), but not bool."""
    return issubclass(tp, (int, float)) and not issubclass(tp, (bool, Enum))


def same_kind(new_type: type, old_type: type) -> bool:
    """Whether values of *new_type* and *old_type* may be compared with each other.

    The types must be identical, except that int and float count as one
    numeric kind: a ``float`` field may hold ``80`` on one side and ``80.5``
    on the other.
    """
    if new_type is old_type:
        return True
    return is_number_type(new_type) and is_number_type(old_type)


def shape_of(tp: type) -> Shape:
    """Classify a Python type into one of the comparison shapes."""
    if tp is type(None):
        return Shape.OPTIONAL
    if issubclass(tp, Enum):
        return Shape.OPAQUE
    if is_scalar_type(tp):
        return Shape.SCALAR
    if dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel):
        return Shape.RECORD
    if issubclass(tp, Mapping):
        return Shape.MAPPING
    if issubclass(tp, (list, tuple)):
        return Shape.SEQUENCE
    return Shape.OPAQUE


@dataclass(frozen=True)
class FieldDescriptor:
    """A record field together with its parsed annotation."""

    name: str
    annotation: FieldAnnotation

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")


@dataclass(frozen=True)
class TypeDescriptor:
    """Cached description of how values of one type are compared.

    Only the type's name is kept, so a cached descriptor never keeps its
    type alive.
    """

    name: str
    shape: Shape
    fields: tuple[FieldDescriptor, ...] = ()

    def field(self, name: str) -> FieldDescriptor | None:
        for fd in self.fields:
            if fd.name == name:
                return fd
        return None


class DescriptorRegistry:
    """Builds and caches :class:`TypeDescriptor` instances.

    One registry exists per annotation tag; use :meth:`for_tag` to obtain the
    shared instance.  Descriptor construction is serialised by a lock, lookups
    of already-built descriptors are not.  Types are held weakly, so classes
    created at runtime drop out of the cache once they are collected.

    Parameters
    ----------
    annotation_tag:
        Metadata key under which record fields carry their raw annotation.
    """

    _instances: dict[str, DescriptorRegistry] = {}
    _instances_lock = threading.Lock()

    def __init__(self, annotation_tag: str = DEFAULT_ANNOTATION_TAG) -> None:
        self._tag = annotation_tag
        self._descriptors: weakref.WeakKeyDictionary[type, TypeDescriptor] = (
            weakref.WeakKeyDictionary()
        )
        self._lock = threading.Lock()

    @classmethod
    def for_tag(cls, annotation_tag: str = DEFAULT_ANNOTATION_TAG) -> DescriptorRegistry:
        """Return the shared registry for *annotation_tag*, creating it if needed."""
        registry = cls._instances.get(annotation_tag)
        if registry is None:
            with cls._instances_lock:
                registry = cls._instances.get(annotation_tag)
                if registry is None:
                    registry = cls(annotation_tag)
                    cls._instances[annotation_tag] = registry
        return registry

    @classmethod
    def reset(cls) -> None:
        """Drop all shared registries (for testing)."""
        with cls._instances_lock:
            cls._instances.clear()

    @property
    def annotation_tag(self) -> str:
        return self._tag

    def describe(self, tp: type) -> TypeDescriptor:
        """Return the descriptor for *tp*, building it on first use."""
        descriptor = self._descriptors.get(tp)
        if descriptor is not None:
            return descriptor

        with self._lock:
            descriptor = self._descriptors.get(tp)
            if descriptor is None:
                descriptor = self._build(tp)
                self._descriptors[tp] = descriptor
                logger.debug(
                    "Registered type %s as %s with %d field(s)",
                    descriptor.name,
                    descriptor.shape.value,
                    len(descriptor.fields),
                )
        return descriptor

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, tp: type) -> bool:
        return tp in self._descriptors

    # -- internals -------------------------------------------------------------

    def _build(self, tp: type) -> TypeDescriptor:
        shape = shape_of(tp)
        if shape is not Shape.RECORD:
            return TypeDescriptor(name=tp.__name__, shape=shape)

        fields = tuple(
            FieldDescriptor(name=name, annotation=self._parse(tp, name, raw))
            for name, raw in self._raw_annotations(tp)
        )
        return TypeDescriptor(name=tp.__name__, shape=shape, fields=fields)

    def _raw_annotations(self, tp: type) -> list[tuple[str, Any]]:
        if dataclasses.is_dataclass(tp):
            return [(f.name, f.metadata.get(self._tag, "")) for f in dataclasses.fields(tp)]

        pairs: list[tuple[str, Any]] = []
        for name, info in tp.model_fields.items():
            extra = info.json_schema_extra
            raw = extra.get(self._tag, "") if isinstance(extra, dict) else ""
            pairs.append((name, raw))
        return pairs

    @staticmethod
    def _parse(tp: type, field_name: str, raw: Any) -> FieldAnnotation:
        try:
            return parse_annotation(raw)
        except InvalidAnnotationError as exc:
            raise InvalidAnnotationError(
                f"Invalid annotation on {tp.__name__}.{field_name}: {exc}",
                path=field_name,
            ) from exc
