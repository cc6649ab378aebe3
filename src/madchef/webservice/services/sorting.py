"""Sorting helpers for webservice list endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from madchef.webservice.services.projection import split_fields

ASCENDING = 1
DESCENDING = -1
DESCENDING_TOKEN = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Ordered ``(field, direction)`` pairs. Earlier pairs take precedence on ties."""

    keys: Tuple[Tuple[str, int], ...]

    def fields(self) -> Tuple[str, ...]:
        return tuple(field for field, _ in self.keys)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.keys)

    def with_tiebreak(self, field: str = "_id") -> "SortSpec":
        """Append ``field`` in the last key's direction unless it is already a key.

        Rows that tie on every key then keep one order across separate page queries.
        """
        if field in self.fields():
            return self
        direction = self.keys[-1][1] if self.keys else ASCENDING
        return SortSpec(keys=self.keys + ((field, direction),))


def build_sort(sort_keys: str | None, order: str | None, default_key: str = "updatedAt") -> SortSpec:
    """Build a sort spec where every key shares the direction given by ``order``.

    ``order`` is compared case-sensitively with ``"desc"``; any other value means ascending.
    ``default_key`` is used when no key is given and should be an indexed, monotonic field.
    Invalid field names raise ``ValueError``.
    """
    direction = DESCENDING if order == DESCENDING_TOKEN else ASCENDING
    fields = split_fields(sort_keys) or (default_key,)
    return SortSpec(keys=tuple((field, direction) for field in fields))
