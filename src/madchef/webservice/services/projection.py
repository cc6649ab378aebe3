"""Projection helpers for webservice list and detail endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


def _check_field_name(name: str):
    if name.startswith("$") or any(not segment for segment in name.split(".")):
        raise ValueError(f"Invalid field name: {name!r}")


def split_fields(raw: str | None) -> Tuple[str, ...]:
    """Split a comma-separated field list, dropping blanks and repeated names.

    Raises ``ValueError`` for names starting with ``$`` or holding an empty path segment.
    """
    if not raw:
        return ()
    fields: Tuple[str, ...] = ()
    for part in raw.split(","):
        name = part.strip()
        if name and name not in fields:
            _check_field_name(name)
            fields = fields + (name,)
    return fields


def _check_path_collisions(fields: Tuple[str, ...]):
    for field in fields:
        for other in fields:
            if other.startswith(field + "."):
                raise ValueError(f"Path collision between {field!r} and {other!r}")


@dataclass(frozen=True)
class ProjectionSpec:
    """Field selection built from either an include list or an exclude list."""

    fields: Tuple[str, ...] = ()
    include: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def selects(self, field: str) -> bool:
        """Whether ``field`` survives this projection."""
        if self.is_empty:
            return True
        return (field in self.fields) == self.include

    def to_dict(self) -> Dict[str, int]:
        flag = 1 if self.include else 0
        return {field: flag for field in self.fields}


def build_projection(include: str | None, exclude: str | None) -> ProjectionSpec:
    """Build a projection from raw ``include``/``exclude`` query values.

    When both lists are given the include list wins and ``exclude`` is ignored.
    Both empty yields an empty spec, meaning every field is returned.
    Raises ``ValueError`` when a field and one of its sub-paths are both listed.
    """
    included = split_fields(include)
    if included:
        _check_path_collisions(included)
        return ProjectionSpec(fields=included, include=True)
    excluded = split_fields(exclude)
    _check_path_collisions(excluded)
    return ProjectionSpec(fields=excluded, include=False)
