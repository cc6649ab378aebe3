"""Admin profile endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_db_api
from madchef.webservice.schemas.common import ItemResponse
from madchef.webservice.services.projection import build_projection
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/admins", tags=["admins"])


@router.get("/{admin_id}", response_model=ItemResponse)
def get_admin(
    admin_id: str,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    projection = build_projection(include, exclude)
    doc = db.find_one(Collections.ADMINS, {"_id": to_object_id(admin_id)}, projection=projection.to_dict())
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Admin not found: {admin_id}")
    return ItemResponse(data=normalize_doc(doc))
