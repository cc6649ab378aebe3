"""Chef endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections, Role
from madchef.configs import CHEFS_PER_PAGE, REVIEWS_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_db_api, require_roles
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.schemas.resources import RatingCreate, RatingUpdate
from madchef.webservice.services.aggregation import average_rating, build_document_plan, joined_fields
from madchef.webservice.services.filters import match_ids, parse_data_filter
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.projection import build_projection
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/chefs", tags=["chefs"])

CHEF_RATING = average_rating(Collections.CHEF_REVIEWS, foreign_field="chefId", count_name="reviewCount")
REVIEW_AUTHOR = joined_fields(Collections.STUDENTS, "studentId", {"studentName": "name", "studentImg": "img"})


@router.get("", response_model=ListResponse)
def get_chefs(
    params: ListQueryParams = Depends(list_query_params),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """List chefs with their average review ``rating``."""
    return run_list_query(db, Collections.CHEFS, params, CHEFS_PER_PAGE, computed_field=CHEF_RATING)


@router.get("/{chef_id}", response_model=ItemResponse)
def get_chef(
    chef_id: str,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    plan = build_document_plan(match_ids(_id=chef_id), CHEF_RATING, build_projection(include, exclude))
    docs = db.aggregate(Collections.CHEFS, plan.pipeline())
    if not docs:
        raise HTTPException(status_code=404, detail=f"Chef not found: {chef_id}")
    return ItemResponse(data=normalize_doc(docs[0]))


@router.get("/{chef_id}/reviews", response_model=ListResponse)
def get_chef_reviews(
    chef_id: str,
    data_filter: Optional[str] = None,
    params: ListQueryParams = Depends(list_query_params),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """List reviews of a chef, optionally narrowed to one ``studentId``."""
    parsed = parse_data_filter(data_filter)
    filters = match_ids(chefId=chef_id, studentId=parsed.get("studentId"))
    return run_list_query(db, Collections.CHEF_REVIEWS, params, REVIEWS_PER_PAGE, filters, REVIEW_AUTHOR)


@router.post("/{chef_id}/reviews", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def post_chef_review(
    chef_id: str,
    payload: RatingCreate,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Review a chef once per student."""
    chef_oid = to_object_id(chef_id)
    if not db.exists(Collections.CHEFS, {"_id": chef_oid}):
        raise HTTPException(status_code=404, detail=f"Chef not found: {chef_id}")
    key = {"chefId": chef_oid, "studentId": to_object_id(caller.user_id)}
    if db.exists(Collections.CHEF_REVIEWS, key):
        raise HTTPException(status_code=409, detail="You already reviewed this chef.")
    review = db.insert_one(Collections.CHEF_REVIEWS, dict(key, **payload.model_dump()))
    return ItemResponse(message="Successfully created.", data=normalize_doc(review))


def _own_review_filter(db: DBAPI, chef_id: str, review_id: str, caller: Caller) -> dict:
    review_filter = {"_id": to_object_id(review_id), "chefId": to_object_id(chef_id)}
    review = db.find_one(Collections.CHEF_REVIEWS, review_filter)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review not found: {review_id}")
    if review.get("studentId") != to_object_id(caller.user_id):
        raise HTTPException(status_code=403, detail="You are unauthorized to change this review.")
    return review_filter


@router.patch("/{chef_id}/reviews/{review_id}", response_model=ItemResponse)
def edit_chef_review(
    chef_id: str,
    review_id: str,
    payload: RatingUpdate,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No update data provided.")
    review_filter = _own_review_filter(db, chef_id, review_id, caller)
    updated = db.find_one_and_update(Collections.CHEF_REVIEWS, review_filter, {"$set": changes})
    return ItemResponse(data=normalize_doc(updated))


@router.delete("/{chef_id}/reviews/{review_id}", response_model=ItemResponse)
def delete_chef_review(
    chef_id: str,
    review_id: str,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Delete the caller's own review."""
    review_filter = _own_review_filter(db, chef_id, review_id, caller)
    deleted = db.delete_one(Collections.CHEF_REVIEWS, review_filter)
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})
