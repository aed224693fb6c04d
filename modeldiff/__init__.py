"""Annotation-driven structural diff of two snapshots of the same data shape."""

from modeldiff.annotations import CompareMode, FieldAnnotation, compared_by, parse_annotation
from modeldiff.comparator import Comparator, diff
from modeldiff.config import DuplicateKeyPolicy, Settings, get_settings, load_settings
from modeldiff.errors import (
    ConfigurationError,
    DuplicateKeyError,
    InvalidAnnotationError,
    InvalidElementError,
    MissingKeyFieldError,
    ModelDiffError,
    TypeMismatchError,
    UnsupportedKeyTypeError,
    UnsupportedMapKeyTypeError,
)
from modeldiff.models.diff import DiffResult
from modeldiff.serializer import deserialize_diff, diff_to_dict, serialize_diff

__version__ = "0.1.0"

__all__ = [
    "CompareMode",
    "Comparator",
    "ConfigurationError",
    "DiffResult",
    "DuplicateKeyError",
    "DuplicateKeyPolicy",
    "FieldAnnotation",
    "InvalidAnnotationError",
    "InvalidElementError",
    "MissingKeyFieldError",
    "ModelDiffError",
    "Settings",
    "TypeMismatchError",
    "UnsupportedKeyTypeError",
    "UnsupportedMapKeyTypeError",
    "compared_by",
    "deserialize_diff",
    "diff",
    "diff_to_dict",
    "get_settings",
    "load_settings",
    "parse_annotation",
    "serialize_diff",
]
