"""Domain filter stages for list endpoints."""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import unquote

from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections, RecipeStatus, Role

Stage = Dict[str, Any]

UPLOAD_DATE_BUCKETS = ("today", "this month", "this year")


def parse_data_filter(raw: str | None) -> Dict[str, Any]:
    """Decode the URL-encoded JSON ``data_filter`` query value."""
    if not raw:
        return {}
    try:
        parsed = json.loads(unquote(raw))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid data_filter JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("data_filter must decode to a JSON object.")
    return parsed


def visibility_filter(role: Role | None) -> List[Stage]:
    """Only published recipes unless the role sees everything."""
    if role is not None and role.grants_full_visibility:
        return []
    return [{"$match": {"status": RecipeStatus.PUBLISHED.value}}]


def upload_date_expression(bucket: str, now: datetime) -> Dict[str, Any] | None:
    """``$expr`` clause matching ``createdAt`` against a date bucket; ``None`` for unknown buckets."""
    bucket = bucket.strip().lower()
    if bucket == "today":
        return {"$eq": [{"$dateToString": {"format": "%Y-%m-%d", "date": "$createdAt"}}, now.strftime("%Y-%m-%d")]}
    if bucket == "this month":
        return {
            "$and": [
                {"$eq": [{"$month": "$createdAt"}, now.month]},
                {"$eq": [{"$year": "$createdAt"}, now.year]},
            ]
        }
    if bucket == "this year":
        return {"$eq": [{"$year": "$createdAt"}, now.year]}
    return None


def text_search_filter(search_query: str) -> List[Stage]:
    """Case-insensitive match on the recipe title or its chef's name."""
    pattern = re.escape(search_query)
    return [
        {"$lookup": {"from": Collections.CHEFS, "localField": "author", "foreignField": "_id", "as": "_chef_info"}},
        {
            "$match": {
                "$or": [
                    {"title": {"$regex": pattern, "$options": "i"}},
                    {"_chef_info.name": {"$regex": pattern, "$options": "i"}},
                ]
            }
        },
        {"$unset": "_chef_info"},
    ]


def recipe_filters(data_filter: Dict[str, Any], role: Role | None, now: datetime) -> List[Stage]:
    """Visibility first, then free-text search, then chef/region/upload-date clauses."""
    stages = visibility_filter(role)

    search_query = data_filter.get("searchQuery")
    if search_query:
        stages.extend(text_search_filter(str(search_query)))

    clauses = []
    if data_filter.get("chefId"):
        clauses.append({"$eq": ["$author", to_object_id(data_filter["chefId"])]})
    if data_filter.get("region"):
        clauses.append({"$eq": ["$region", {"$literal": data_filter["region"]}]})
    if data_filter.get("uploadDate"):
        date_clause = upload_date_expression(str(data_filter["uploadDate"]), now)
        if date_clause is not None:
            clauses.append(date_clause)
    if clauses:
        stages.append({"$match": {"$expr": {"$and": clauses}}})
    return stages


def match_ids(**fields) -> List[Stage]:
    """Single ``$match`` on ObjectId fields; ``None`` values are skipped."""
    match = {name: to_object_id(value) for name, value in fields.items() if value is not None}
    return [{"$match": match}] if match else []
