"""Unit tests for modeldiff.schema."""

from __future__ import annotations

import gc
import threading
import weakref
from collections import OrderedDict
from dataclasses import dataclass, field, make_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum, IntEnum

import pytest
from modeldiff.annotations import CompareMode, compared_by
from modeldiff.errors import InvalidAnnotationError
from modeldiff.schema import DescriptorRegistry, Shape, is_scalar, same_kind, shape_of
from pydantic import BaseModel, Field


@dataclass
class Item:
    Id: int
    Label: str = ""
    Tags: list[str] = field(default_factory=list, metadata=compared_by(direct=True))
    _cache: dict = field(default_factory=dict)


@dataclass
class Basket:
    Items: list[Item] = field(default_factory=list, metadata=compared_by("Id", direct=True))
    Note: str = field(default="", metadata=compared_by(exclude=True))


@dataclass
class Broken:
    Items: list[Item] = field(default_factory=list, metadata={"comparedby": "Id,sorted"})


class Endpoint(BaseModel):
    host: str
    port: int = Field(default=80, json_schema_extra={"diffby": "-"})
    tags: list[str] = Field(default_factory=list, json_schema_extra=compared_by(direct=True))


class Level(IntEnum):
    LOW = 1


class Mood(Enum):
    HAPPY = "happy"


@pytest.fixture(autouse=True)
def _reset_registries():
    DescriptorRegistry.reset()
    yield
    DescriptorRegistry.reset()


# ---------------------------------------------------------------------------
# shape_of
# ---------------------------------------------------------------------------


class TestShapeOf:
    @pytest.mark.parametrize("tp", [bool, int, float, str])
    def test_scalars(self, tp):
        assert shape_of(tp) is Shape.SCALAR

    def test_none_is_optional(self):
        assert shape_of(type(None)) is Shape.OPTIONAL

    @pytest.mark.parametrize("tp", [list, tuple])
    def test_sequences(self, tp):
        assert shape_of(tp) is Shape.SEQUENCE

    @pytest.mark.parametrize("tp", [dict, OrderedDict])
    def test_mappings(self, tp):
        assert shape_of(tp) is Shape.MAPPING

    def test_dataclass_is_record(self):
        assert shape_of(Item) is Shape.RECORD

    def test_pydantic_model_is_record(self):
        assert shape_of(Endpoint) is Shape.RECORD

    @pytest.mark.parametrize("tp", [Level, Mood, datetime, Decimal, bytes, set, frozenset])
    def test_everything_else_is_opaque(self, tp):
        assert shape_of(tp) is Shape.OPAQUE

    def test_is_scalar_excludes_enums(self):
        assert is_scalar(3)
        assert not is_scalar(Level.LOW)

    def test_int_and_float_are_one_kind(self):
        assert same_kind(int, float)
        assert same_kind(float, int)
        assert same_kind(str, str)

    @pytest.mark.parametrize(
        ("new", "old"),
        [(bool, int), (int, bool), (str, int), (Level, int), (list, tuple)],
    )
    def test_other_pairs_differ(self, new, old):
        assert not same_kind(new, old)


# ---------------------------------------------------------------------------
# DescriptorRegistry
# ---------------------------------------------------------------------------


class TestDescriptorRegistry:
    def test_scalar_descriptor_has_no_fields(self):
        descriptor = DescriptorRegistry().describe(int)
        assert descriptor.shape is Shape.SCALAR
        assert descriptor.fields == ()
        assert descriptor.name == "int"

    def test_dataclass_fields_in_declaration_order(self):
        descriptor = DescriptorRegistry().describe(Item)
        assert [fd.name for fd in descriptor.fields] == ["Id", "Label", "Tags", "_cache"]

    def test_dataclass_annotations_parsed(self):
        descriptor = DescriptorRegistry().describe(Basket)
        items = descriptor.field("Items")
        assert items is not None
        assert items.annotation.key_field == "Id"
        assert items.annotation.mode is CompareMode.DIRECT
        note = descriptor.field("Note")
        assert note is not None
        assert note.annotation.excluded

    def test_private_fields_not_exported(self):
        descriptor = DescriptorRegistry().describe(Item)
        cache = descriptor.field("_cache")
        assert cache is not None
        assert not cache.exported
        assert descriptor.field("Id").exported

    def test_missing_field_lookup(self):
        assert DescriptorRegistry().describe(Item).field("Nope") is None

    def test_pydantic_annotations_use_registry_tag(self):
        default = DescriptorRegistry().describe(Endpoint)
        assert default.field("port").annotation.is_plain
        assert default.field("tags").annotation.mode is CompareMode.DIRECT

        custom = DescriptorRegistry("diffby").describe(Endpoint)
        assert custom.field("port").annotation.excluded
        assert custom.field("tags").annotation.is_plain

    def test_descriptor_cached(self):
        registry = DescriptorRegistry()
        first = registry.describe(Basket)
        assert registry.describe(Basket) is first
        assert Basket in registry
        assert len(registry) == 1

    def test_runtime_type_released(self):
        registry = DescriptorRegistry()
        temp = make_dataclass("Temp", [("Value", int)])
        registry.describe(temp)
        assert len(registry) == 1

        ref = weakref.ref(temp)
        del temp
        gc.collect()

        assert ref() is None
        assert len(registry) == 0

    def test_invalid_annotation_names_field(self):
        with pytest.raises(InvalidAnnotationError, match="Broken.Items"):
            DescriptorRegistry().describe(Broken)

    def test_for_tag_returns_shared_instance(self):
        assert DescriptorRegistry.for_tag("comparedby") is DescriptorRegistry.for_tag("comparedby")
        assert DescriptorRegistry.for_tag("comparedby") is not DescriptorRegistry.for_tag("diffby")
        assert DescriptorRegistry.for_tag("diffby").annotation_tag == "diffby"

    def test_concurrent_describe_builds_once(self):
        registry = DescriptorRegistry()
        seen = []

        def worker():
            seen.append(registry.describe(Basket))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(d) for d in seen}) == 1
