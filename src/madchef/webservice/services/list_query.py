"""Shared list-endpoint flow: parse query parameters, build the plan, run it, shape the envelope."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from fastapi import Query

from madchef.configs import DEFAULT_SORT_KEY
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.schemas.common import ListResponse, PageMeta
from madchef.webservice.services.aggregation import ComputedFieldSpec, build_count_pipeline, build_plan
from madchef.webservice.services.pagination import PaginationConfig, normalize_page, render_page_descriptor
from madchef.webservice.services.projection import build_projection
from madchef.webservice.services.serializers import normalize_docs
from madchef.webservice.services.sorting import build_sort


@dataclass(frozen=True)
class ListQueryParams:
    """Raw list parameters; page and limit stay strings until normalized."""

    page: Optional[str] = None
    limit: Optional[str] = None
    sort: Optional[str] = None
    order: Optional[str] = None
    include: Optional[str] = None
    exclude: Optional[str] = None


def list_query_params(
    p: Optional[str] = Query(default=None, description="Page number (alias of `page`)."),
    page: Optional[str] = Query(default=None, description="1-based page number."),
    l: Optional[str] = Query(default=None, description="Page size (alias of `limit`)."),  # noqa: E741
    limit: Optional[str] = Query(default=None, description="Page size; falls back to the resource default."),
    sort: Optional[str] = Query(default=None, description="Comma-separated sort fields."),
    order: Optional[str] = Query(default=None, description="`desc` for descending, anything else ascending."),
    include: Optional[str] = Query(default=None, description="Comma-separated fields to return."),
    exclude: Optional[str] = Query(default=None, description="Comma-separated fields to omit."),
) -> ListQueryParams:
    """FastAPI dependency collecting the common list query parameters."""
    return ListQueryParams(
        page=p or page,
        limit=l or limit,
        sort=sort,
        order=order,
        include=include,
        exclude=exclude,
    )


def run_list_query(
    db: DBAPI,
    collection: str,
    params: ListQueryParams,
    config: PaginationConfig,
    filters: Sequence[Dict[str, Any]] = (),
    computed_field: ComputedFieldSpec | None = None,
    default_sort_key: str = DEFAULT_SORT_KEY,
) -> ListResponse:
    """Run a paginated list query and wrap it as ``{data, meta: {page, totalCount}}``."""
    sort = build_sort(params.sort, params.order, default_key=default_sort_key)
    projection = build_projection(params.include, params.exclude)
    page = normalize_page(params.page, params.limit, config)
    plan = build_plan(filters, computed_field, sort, page, projection)

    docs, total_count = db.aggregate_page(collection, plan.pipeline(), build_count_pipeline(filters))
    data: List[Dict[str, Any]] = normalize_docs(docs)
    meta = PageMeta(page=render_page_descriptor(page, total_count), totalCount=total_count)
    return ListResponse(data=data, meta=meta)
