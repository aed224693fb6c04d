"""Diff result model.

A :class:`DiffResult` holds three independent mappings keyed by result path:

* ``Change`` -- path of a modified value -> the old value
* ``Add``    -- path of an added value -> ``None``
* ``Del``    -- path of a removed value -> the old value

Each mapping stays ``None`` until its first entry is recorded, so an empty
comparison serialises to ``{}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modeldiff.paths import prefix_path


class DiffResult(BaseModel):
    """Flat, path-keyed summary of the differences between two snapshots."""

    model_config = ConfigDict(populate_by_name=True)

    change: dict[str, Any] | None = Field(
        default=None,
        alias="Change",
        description="Paths whose value changed, mapped to the old value.",
    )
    add: dict[str, Any] | None = Field(
        default=None,
        alias="Add",
        description="Paths present only in the new snapshot.",
    )
    delete: dict[str, Any] | None = Field(
        default=None,
        alias="Del",
        description="Paths present only in the old snapshot, mapped to the old value.",
    )

    def record_change(self, path: str, old_value: Any) -> None:
        if self.change is None:
            self.change = {}
        self.change[path] = old_value

    def record_add(self, path: str, new_value: Any = None) -> None:
        if self.add is None:
            self.add = {}
        self.add[path] = new_value

    def record_delete(self, path: str, old_value: Any) -> None:
        if self.delete is None:
            self.delete = {}
        self.delete[path] = old_value

    def merge_prefixed(self, prefix: str, nested: DiffResult) -> None:
        """Merge *nested* into this result, re-keying every path under *prefix*.

        A nested path ``p`` becomes ``prefix.p``; the nested root path (the
        empty string) becomes *prefix* itself.
        """
        for path, value in (nested.change or {}).items():
            self.record_change(prefix_path(prefix, path), value)
        for path, value in (nested.add or {}).items():
            self.record_add(prefix_path(prefix, path), value)
        for path, value in (nested.delete or {}).items():
            self.record_delete(prefix_path(prefix, path), value)

    def is_empty(self) -> bool:
        """Return ``True`` if no difference of any kind was recorded."""
        return not (self.change or self.add or self.delete)

    def total_entries(self) -> int:
        return len(self.change or {}) + len(self.add or {}) + len(self.delete or {})

    def paths(self) -> list[str]:
        """All recorded paths across the three mappings, sorted."""
        return sorted([*(self.change or {}), *(self.add or {}), *(self.delete or {})])
