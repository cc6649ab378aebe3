"""Newsletter subscription endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status

from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_db_api
from madchef.webservice.schemas.common import ItemResponse
from madchef.webservice.schemas.resources import NewsletterSubscription
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/newsletter", tags=["newsletter"])


@router.post("/subscribe", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def subscribe(payload: NewsletterSubscription, db: DBAPI = Depends(get_db_api)) -> ItemResponse:
    """Subscribe an email address, optionally linked to a user."""
    doc = {"email": payload.email.strip().lower()}
    if payload.userId:
        doc["userId"] = to_object_id(payload.userId)
    taken = [{"email": doc["email"]}] + ([{"userId": doc["userId"]}] if "userId" in doc else [])
    if db.exists(Collections.NEWSLETTER_SUBSCRIBERS, {"$or": taken}):
        raise HTTPException(status_code=409, detail="Already subscribed.")
    return ItemResponse(message="Successfully subscribed.", data=normalize_doc(db.insert_one(Collections.NEWSLETTER_SUBSCRIBERS, doc)))
