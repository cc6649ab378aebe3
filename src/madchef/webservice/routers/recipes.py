"""Recipe endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from madchef.commons.utils import to_object_id, utc_now
from madchef.commons.vocabulary import Collections, RecipeStatus, Role
from madchef.configs import RATINGS_PER_PAGE, RECIPES_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_db_api, get_optional_caller, require_roles
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.schemas.resources import (
    RatingCreate,
    RatingUpdate,
    RecipeCreate,
    RecipeStatusUpdate,
    RecipeUpdate,
)
from madchef.webservice.services.aggregation import average_rating, build_document_plan, joined_fields
from madchef.webservice.services.filters import match_ids, parse_data_filter, recipe_filters, visibility_filter
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.projection import build_projection
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/recipes", tags=["recipes"])

RECIPE_RATING = average_rating(Collections.RATINGS, foreign_field="recipeId", count_name="ratingCount")
RATING_AUTHOR = joined_fields(Collections.STUDENTS, "studentId", {"studentName": "name", "studentImg": "img"})


def _get_recipe_or_404(db: DBAPI, recipe_id: str, session=None) -> dict:
    doc = db.find_one(Collections.RECIPES, {"_id": to_object_id(recipe_id)}, session=session)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")
    return doc


@router.get("", response_model=ListResponse)
@router.get("/search", response_model=ListResponse)
def search_recipes(
    data_filter: Optional[str] = None,
    params: ListQueryParams = Depends(list_query_params),
    caller: Optional[Caller] = Depends(get_optional_caller),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """Search recipes with pagination, sorting, projection and an average rating per recipe.

    ``data_filter`` is URL-encoded JSON with optional ``searchQuery``, ``chefId``, ``region`` and
    ``uploadDate`` (``today``, ``this month`` or ``this year``).
    """
    role = None if caller is None else caller.role
    filters = recipe_filters(parse_data_filter(data_filter), role, utc_now())
    return run_list_query(db, Collections.RECIPES, params, RECIPES_PER_PAGE, filters, RECIPE_RATING)


@router.get("/{recipe_id}", response_model=ItemResponse)
def get_recipe(
    recipe_id: str,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    caller: Optional[Caller] = Depends(get_optional_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Get a recipe with its average ``rating`` and ``ratingCount``."""
    filters = [{"$match": {"_id": to_object_id(recipe_id)}}]
    filters.extend(visibility_filter(None if caller is None else caller.role))
    plan = build_document_plan(filters, RECIPE_RATING, build_projection(include, exclude))
    docs = db.aggregate(Collections.RECIPES, plan.pipeline())
    if not docs:
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")
    return ItemResponse(data=normalize_doc(docs[0]))


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def post_recipe(
    payload: RecipeCreate,
    caller: Caller = Depends(require_roles(Role.CHEF)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Create a pending recipe and append it to the author's recipe list atomically."""
    chef_id = to_object_id(caller.user_id)
    new_doc = dict(payload.model_dump(), author=chef_id, status=RecipeStatus.PENDING.value, like=0)

    def _create(session):
        recipe = db.insert_one(Collections.RECIPES, new_doc, session=session)
        if not db.update_one(Collections.CHEFS, {"_id": chef_id}, {"$push": {"recipes": recipe["_id"]}}, session=session):
            raise HTTPException(status_code=404, detail=f"Chef not found: {caller.user_id}")
        return recipe

    recipe = db.transaction(_create)
    return ItemResponse(message="Successfully created.", data=normalize_doc(recipe))


@router.patch("/{recipe_id}", response_model=ItemResponse)
def edit_recipe(
    recipe_id: str,
    payload: RecipeUpdate,
    caller: Caller = Depends(require_roles(Role.CHEF)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Edit a recipe. Only its author may do so."""
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No update data provided.")
    recipe = _get_recipe_or_404(db, recipe_id)
    if recipe.get("author") != to_object_id(caller.user_id):
        raise HTTPException(status_code=403, detail="You are unauthorized to edit this recipe.")
    updated = db.find_one_and_update(Collections.RECIPES, {"_id": recipe["_id"]}, {"$set": changes})
    return ItemResponse(data=normalize_doc(updated))


@router.patch("/{recipe_id}/status", response_model=ItemResponse)
def update_recipe_status(
    recipe_id: str,
    payload: RecipeStatusUpdate,
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Publish, reject or reset a recipe to pending."""
    updated = db.find_one_and_update(
        Collections.RECIPES, {"_id": to_object_id(recipe_id)}, {"$set": {"status": payload.status.value}}
    )
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")
    return ItemResponse(data=normalize_doc(updated))


@router.delete("/{recipe_id}", response_model=ItemResponse)
def delete_recipe(
    recipe_id: str,
    caller: Caller = Depends(require_roles(Role.CHEF, Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Authors delete their own recipes; admins delete rejected ones."""
    recipe = _get_recipe_or_404(db, recipe_id)
    if caller.role == Role.CHEF and recipe.get("author") != to_object_id(caller.user_id):
        raise HTTPException(status_code=403, detail="You are unauthorized to delete this recipe.")
    if caller.role == Role.ADMIN and recipe.get("status") != RecipeStatus.REJECTED.value:
        raise HTTPException(status_code=400, detail="Only rejected recipes can be deleted.")

    def _delete(session):
        deleted = db.delete_one(Collections.RECIPES, {"_id": recipe["_id"]}, session=session)
        db.update_one(
            Collections.CHEFS, {"_id": recipe.get("author")}, {"$pull": {"recipes": recipe["_id"]}}, session=session
        )
        return deleted

    deleted = db.transaction(_delete)
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})


@router.get("/{recipe_id}/ratings", response_model=ListResponse)
def get_recipe_ratings(
    recipe_id: str,
    data_filter: Optional[str] = None,
    params: ListQueryParams = Depends(list_query_params),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """List a recipe's ratings with the rating student's ``studentName`` and ``studentImg``."""
    parsed = parse_data_filter(data_filter)
    filters = match_ids(recipeId=recipe_id, studentId=parsed.get("studentId"))
    return run_list_query(db, Collections.RATINGS, params, RATINGS_PER_PAGE, filters, RATING_AUTHOR)


@router.post("/{recipe_id}/ratings", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def post_recipe_rating(
    recipe_id: str,
    payload: RatingCreate,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Rate a recipe once per student."""
    recipe = _get_recipe_or_404(db, recipe_id)
    key = {"recipeId": recipe["_id"], "studentId": to_object_id(caller.user_id)}
    if db.exists(Collections.RATINGS, key):
        raise HTTPException(status_code=409, detail="You already rated this recipe.")
    rating = db.insert_one(Collections.RATINGS, dict(key, **payload.model_dump()))
    return ItemResponse(message="Successfully created.", data=normalize_doc(rating))


def _own_rating_filter(db: DBAPI, recipe_id: str, rating_id: str, caller: Caller) -> dict:
    rating_filter = {"_id": to_object_id(rating_id), "recipeId": to_object_id(recipe_id)}
    rating = db.find_one(Collections.RATINGS, rating_filter)
    if rating is None:
        raise HTTPException(status_code=404, detail=f"Rating not found: {rating_id}")
    if rating.get("studentId") != to_object_id(caller.user_id):
        raise HTTPException(status_code=403, detail="You are unauthorized to change this rating.")
    return rating_filter


@router.patch("/{recipe_id}/ratings/{rating_id}", response_model=ItemResponse)
def edit_recipe_rating(
    recipe_id: str,
    rating_id: str,
    payload: RatingUpdate,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Edit the caller's own rating."""
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No update data provided.")
    rating_filter = _own_rating_filter(db, recipe_id, rating_id, caller)
    updated = db.find_one_and_update(Collections.RATINGS, rating_filter, {"$set": changes})
    return ItemResponse(message="Rating updated successfully.", data=normalize_doc(updated))


@router.delete("/{recipe_id}/ratings/{rating_id}", response_model=ItemResponse)
def delete_recipe_rating(
    recipe_id: str,
    rating_id: str,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    rating_filter = _own_rating_filter(db, recipe_id, rating_id, caller)
    deleted = db.delete_one(Collections.RATINGS, rating_filter)
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})
