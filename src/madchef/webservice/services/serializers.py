"""Serialization helpers for API responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from bson import Decimal128, ObjectId


def _to_jsonable(value: Any) -> Any:
    """Recursively normalize values for JSON responses."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return str(value)


def normalize_doc(doc: Dict[str, Any] | None) -> Dict[str, Any] | None:
    """Normalize one document; ``None`` stays ``None``."""
    return None if doc is None else _to_jsonable(doc)


def normalize_docs(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Normalize result documents for JSON API response."""
    return [_to_jsonable(doc) for doc in docs]
