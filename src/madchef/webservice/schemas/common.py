"""Shared request/response schemas for webservice endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from madchef.commons.vocabulary import Package, Role


class Caller(BaseModel):
    """Identity of the authenticated caller, as issued by the identity provider."""

    user_id: str = Field(..., min_length=1)
    uid: Optional[str] = None
    email: Optional[str] = None
    email_verified: bool = False
    role: Role = Role.STUDENT
    pkg: Package = Package.BASIC


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: Optional[str] = None
    totalCount: int = 0


class ListResponse(BaseModel):
    """Generic list envelope for collection endpoints."""

    data: List[Dict[str, Any]]
    meta: PageMeta


class ItemResponse(BaseModel):
    """Envelope for single-document and write endpoints."""

    message: str = "Successful"
    data: Any = None
