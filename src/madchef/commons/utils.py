"""Utilities."""

from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId


class InvalidObjectIdError(ValueError):
    """Raised when a value is not a valid MongoDB ObjectId."""

    def __init__(self, value=None):
        self.value = value
        super().__init__("Invalid MongoDB ID provided.")


def is_valid_object_id(value) -> bool:
    return isinstance(value, (str, ObjectId)) and ObjectId.is_valid(value)


def to_object_id(value) -> ObjectId:
    """Convert ``value`` to an ObjectId or raise :class:`InvalidObjectIdError`."""
    if isinstance(value, ObjectId):
        return value
    if not is_valid_object_id(value):
        raise InvalidObjectIdError(value)
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise InvalidObjectIdError(value) from exc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
