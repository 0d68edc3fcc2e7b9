"""Column mapping: which CSV header feeds each target field.

A mapping is a plain ``dict`` from every target field to a header string or
``None`` (unmapped).  All helpers return a new dict and never mutate their
input, so a mapping can be stored inside the immutable application state.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence

from .config import REQUIRED_FIELDS, SUGGESTION_KEY_ALIASES, TARGET_FIELDS

ColumnMapping = Dict[str, Optional[str]]


def reset_mapping() -> ColumnMapping:
    """Return a mapping with every target field unmapped."""
    return {field: None for field in TARGET_FIELDS}


def set_mapping(
    mapping: Mapping[str, Optional[str]], field: str, header: Optional[str]
) -> ColumnMapping:
    """Overwrite one field.

    The header is not checked against the current CSV here; a header that is
    not present simply projects to empty strings.
    """
    if field not in TARGET_FIELDS:
        raise KeyError(f"Unknown target field: {field!r}")
    updated = dict(mapping)
    updated[field] = header or None
    return updated


def is_complete(
    mapping: Mapping[str, Optional[str]],
    required_fields: Iterable[str] = REQUIRED_FIELDS,
) -> bool:
    return all(mapping.get(field) for field in required_fields)


def missing_fields(
    mapping: Mapping[str, Optional[str]],
    required_fields: Iterable[str] = REQUIRED_FIELDS,
) -> list[str]:
    return [field for field in required_fields if not mapping.get(field)]


def reconcile_mapping(
    mapping: Mapping[str, Optional[str]], headers: Sequence[str]
) -> ColumnMapping:
    """Unmap every field whose header is not in ``headers``."""
    known = set(headers)
    return {
        field: (mapping.get(field) if mapping.get(field) in known else None)
        for field in TARGET_FIELDS
    }


def mapping_from_suggestion(
    suggestion: Mapping[str, str], headers: Sequence[str]
) -> ColumnMapping:
    """Turn a suggester reply into a mapping.

    Keys may use the camelCase spelling (``teamProject``).  Empty values and
    headers that do not exist in ``headers`` are treated as unmapped.
    """
    normalized = {SUGGESTION_KEY_ALIASES.get(key, key): value for key, value in suggestion.items()}
    known = set(headers)
    mapping = reset_mapping()
    for field in TARGET_FIELDS:
        value = normalized.get(field)
        if isinstance(value, str) and value in known:
            mapping[field] = value
    return mapping


def mapped_count(mapping: Mapping[str, Optional[str]]) -> int:
    return sum(1 for field in TARGET_FIELDS if mapping.get(field))
