"""Deterministic serialization of diff results.

The serialised form uses the member names ``Change``, ``Add`` and ``Del``,
omits members with no entries, and sorts every key so identical results
always produce byte-identical JSON.
"""

from __future__ import annotations

import json
from typing import Any

from modeldiff.models.diff import DiffResult


def diff_to_dict(result: DiffResult) -> dict[str, Any]:
    """Convert a result to a JSON-compatible dict.

    Old values that are dataclasses or pydantic models are dumped to plain
    dicts by pydantic.
    """
    raw = result.model_dump(mode="json", by_alias=True)
    # exclude_none would also strip the None values inside Add.
    return {member: entries for member, entries in raw.items() if entries}


def serialize_diff(result: DiffResult) -> str:
    """Serialize a result to a JSON string with sorted keys and 2-space indentation."""
    return json.dumps(diff_to_dict(result), indent=2, sort_keys=True, ensure_ascii=False)


def deserialize_diff(json_str: str) -> DiffResult:
    """Load a result previously produced by :func:`serialize_diff`.

    Old values come back as plain JSON data, not as the original types.

    Raises
    ------
    pydantic.ValidationError
        If the JSON does not have the result shape.
    """
    return DiffResult.model_validate_json(json_str)
