"""Aggregation pipeline assembly for webservice list and detail endpoints.

A plan is an ordered tuple of MongoDB stages built from already-normalized specs:

1. domain filter stages, in the order given;
2. the computed-field group (``$lookup`` + ``$addFields`` + ``$unset``) when one of its
   outputs is also a sort key;
3. ``$sort`` (ending in ``_id`` so ties keep one order), ``$skip`` and ``$limit``, always consecutive;
4. the computed-field group when none of its outputs is a sort key, so that the join only
   runs for the rows of the requested page;
5. ``$project`` when the projection is non-empty.

Nothing here talks to the database.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from madchef.webservice.services.pagination import PageRequest
from madchef.webservice.services.projection import ProjectionSpec
from madchef.webservice.services.sorting import SortSpec

Stage = Dict[str, Any]
Reducer = Literal["avg", "count", "first"]


@dataclass(frozen=True)
class DerivedField:
    """One output field computed from the joined documents."""

    name: str
    reducer: Reducer
    path: str | None = None
    precision: int = 2

    def expression(self, alias: str) -> Any:
        if self.reducer == "avg":
            return {"$round": [{"$avg": f"${alias}.{self.path}"}, self.precision]}
        if self.reducer == "count":
            return {"$size": f"${alias}"}
        return {"$arrayElemAt": [f"${alias}.{self.path}", 0]}


@dataclass(frozen=True)
class ComputedFieldSpec:
    """A join against ``source`` plus the fields derived from the joined rows."""

    source: str
    local_field: str
    foreign_field: str
    outputs: Tuple[DerivedField, ...]

    @property
    def alias(self) -> str:
        return f"_{self.source}_joined"

    def names(self) -> Tuple[str, ...]:
        return tuple(output.name for output in self.outputs)

    def restricted_to(self, names: Iterable[str]) -> Optional["ComputedFieldSpec"]:
        """Keep only the outputs in ``names``; ``None`` when nothing is left."""
        wanted = set(names)
        outputs = tuple(output for output in self.outputs if output.name in wanted)
        if not outputs:
            return None
        return ComputedFieldSpec(self.source, self.local_field, self.foreign_field, outputs)

    def stages(self) -> Tuple[Stage, ...]:
        return (
            {
                "$lookup": {
                    "from": self.source,
                    "localField": self.local_field,
                    "foreignField": self.foreign_field,
                    "as": self.alias,
                }
            },
            {"$addFields": {output.name: output.expression(self.alias) for output in self.outputs}},
            {"$unset": self.alias},
        )


def average_rating(
    source: str, foreign_field: str, name: str = "rating", count_name: str | None = None
) -> ComputedFieldSpec:
    """Average of ``source.rating`` rows pointing at the document, rounded to 2 decimals.

    With no related rows the average is ``null``.
    """
    outputs: Tuple[DerivedField, ...] = (DerivedField(name=name, reducer="avg", path="rating"),)
    if count_name:
        outputs = outputs + (DerivedField(name=count_name, reducer="count"),)
    return ComputedFieldSpec(source=source, local_field="_id", foreign_field=foreign_field, outputs=outputs)


def joined_fields(source: str, local_field: str, fields: Dict[str, str]) -> ComputedFieldSpec:
    """First-match lookup of ``{output name: field in source}`` through ``local_field``."""
    outputs = tuple(DerivedField(name=name, reducer="first", path=path) for name, path in fields.items())
    return ComputedFieldSpec(source=source, local_field=local_field, foreign_field="_id", outputs=outputs)


@dataclass(frozen=True)
class AggregationPlan:
    """Immutable ordered stage list."""

    stages: Tuple[Stage, ...]

    def pipeline(self) -> List[Stage]:
        """Return a fresh copy of the stages for the driver."""
        return copy.deepcopy(list(self.stages))


def _needed_outputs(
    computed_field: ComputedFieldSpec, sort: SortSpec | None, projection: ProjectionSpec
) -> Optional[ComputedFieldSpec]:
    sort_fields = set(sort.fields()) if sort is not None else set()
    names = [name for name in computed_field.names() if name in sort_fields or projection.selects(name)]
    return computed_field.restricted_to(names)


def build_plan(
    filters: Sequence[Stage],
    computed_field: ComputedFieldSpec | None,
    sort: SortSpec,
    page: PageRequest,
    projection: ProjectionSpec,
) -> AggregationPlan:
    """Assemble a paginated list pipeline."""
    stages: List[Stage] = copy.deepcopy(list(filters))
    computed = None if computed_field is None else _needed_outputs(computed_field, sort, projection)
    paging = [{"$sort": sort.with_tiebreak().to_dict()}, {"$skip": page.skip}, {"$limit": page.size}]

    if computed is not None and set(computed.names()) & set(sort.fields()):
        stages.extend(computed.stages())
        stages.extend(paging)
    else:
        stages.extend(paging)
        if computed is not None:
            stages.extend(computed.stages())

    if not projection.is_empty:
        stages.append({"$project": projection.to_dict()})
    return AggregationPlan(stages=tuple(stages))


def build_document_plan(
    filters: Sequence[Stage], computed_field: ComputedFieldSpec | None, projection: ProjectionSpec
) -> AggregationPlan:
    """Assemble a single-document pipeline: filters, selected computed fields, projection."""
    stages: List[Stage] = copy.deepcopy(list(filters))
    if computed_field is not None:
        computed = _needed_outputs(computed_field, None, projection)
        if computed is not None:
            stages.extend(computed.stages())
    if not projection.is_empty:
        stages.append({"$project": projection.to_dict()})
    return AggregationPlan(stages=tuple(stages))


def build_count_pipeline(filters: Sequence[Stage]) -> List[Stage]:
    """Filters followed by a ``$count`` stage producing ``{"total": n}``."""
    return copy.deepcopy(list(filters)) + [{"$count": "total"}]
