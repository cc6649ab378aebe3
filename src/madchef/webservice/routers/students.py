"""Student endpoints: profiles, package upgrade, bookmarks and likes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from madchef.commons.madchef_logger import MadChefLogger
from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import PAYMENT_SUCCEEDED, Collections, Package, ReceiptTitle, Role
from madchef.configs import USERS_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import IdentityProvider, get_caller, get_db_api, get_identity_provider, require_roles
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.schemas.resources import StudentUpdate
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.projection import build_projection
from madchef.webservice.services.serializers import normalize_doc, normalize_docs

router = APIRouter(prefix="/students", tags=["students"])
logger = MadChefLogger()

NEWEST_FIRST = [("createdAt", -1)]


def _require_self(caller: Caller, student_id: str):
    if caller.user_id != student_id:
        raise HTTPException(status_code=403, detail="Unauthorized access.")
    return to_object_id(student_id)


@router.get("", response_model=ListResponse)
def get_students(
    params: ListQueryParams = Depends(list_query_params),
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """List students, sorted by ``name`` unless ``sort`` says otherwise."""
    return run_list_query(db, Collections.STUDENTS, params, USERS_PER_PAGE, default_sort_key="name")


@router.patch("/me", response_model=ItemResponse)
def update_me(
    payload: StudentUpdate,
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No update data provided.")
    updated = db.find_one_and_update(Collections.STUDENTS, {"_id": to_object_id(caller.user_id)}, {"$set": changes})
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Student not found: {caller.user_id}")
    return ItemResponse(data=normalize_doc(updated))


@router.patch("/me/package", response_model=ItemResponse)
def upgrade_package(
    caller: Caller = Depends(require_roles(Role.STUDENT)),
    identity: Optional[IdentityProvider] = Depends(get_identity_provider),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Upgrade the caller to the pro package once a pro-package payment has succeeded.

    The receipt check, the profile update and the identity claims update happen in one
    transaction; a failing claims update rolls the profile back.
    """
    if identity is None:
        raise HTTPException(status_code=503, detail="Identity provider is not configured.")
    student_id = to_object_id(caller.user_id)
    receipt = {"userId": student_id, "title": ReceiptTitle.PRO_PACKAGE.value, "status": PAYMENT_SUCCEEDED}

    def _upgrade(session):
        student = db.find_one(Collections.STUDENTS, {"_id": student_id}, session=session)
        if student is None:
            raise HTTPException(status_code=404, detail=f"Student not found: {caller.user_id}")
        if not db.exists(Collections.PAYMENT_RECEIPTS, receipt, session=session):
            raise HTTPException(status_code=400, detail="No successful pro package payment found.")
        if student.get("pkg") == Package.PRO.value:
            return False
        db.update_one(Collections.STUDENTS, {"_id": student_id}, {"$set": {"pkg": Package.PRO.value}}, session=session)
        identity.set_custom_claims(
            caller.uid or caller.user_id,
            {"_id": caller.user_id, "role": Role.STUDENT.value, "pkg": Package.PRO.value},
        )
        return True

    if not db.transaction(_upgrade):
        return ItemResponse(message="Student package is already up to date.", data={"pkg": Package.PRO.value})
    logger.info(f"Student {caller.user_id} upgraded to the pro package.")
    return ItemResponse(message="Package successfully updated to pro.", data={"pkg": Package.PRO.value})


@router.get("/{student_id}", response_model=ItemResponse)
def get_student(
    student_id: str,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    projection = build_projection(include, exclude)
    doc = db.find_one(Collections.STUDENTS, {"_id": to_object_id(student_id)}, projection=projection.to_dict())
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Student not found: {student_id}")
    return ItemResponse(data=normalize_doc(doc))


@router.get("/{student_id}/bookmarks", response_model=ItemResponse)
def get_bookmarks(student_id: str, caller: Caller = Depends(get_caller), db: DBAPI = Depends(get_db_api)):
    oid = _require_self(caller, student_id)
    return ItemResponse(data=normalize_docs(db.find(Collections.BOOKMARKS, {"studentId": oid}, sort=NEWEST_FIRST)))


@router.get("/{student_id}/bookmark", response_model=ItemResponse)
def get_bookmark(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Return the caller's bookmark of one recipe; empty data when it is not bookmarked."""
    oid = _require_self(caller, student_id)
    doc = db.find_one(Collections.BOOKMARKS, {"studentId": oid, "recipeId": to_object_id(recipeId)})
    if doc is None:
        return ItemResponse(message="You didn't bookmark this recipe.", data={})
    return ItemResponse(data=normalize_doc(doc))


@router.post("/{student_id}/bookmarks", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def add_bookmark(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    key = {"studentId": _require_self(caller, student_id), "recipeId": to_object_id(recipeId)}
    if not db.exists(Collections.RECIPES, {"_id": key["recipeId"]}):
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipeId}")
    if db.exists(Collections.BOOKMARKS, key):
        raise HTTPException(status_code=409, detail="You already bookmarked this recipe.")
    return ItemResponse(message="Successfully bookmarked.", data=normalize_doc(db.insert_one(Collections.BOOKMARKS, key)))


@router.delete("/{student_id}/bookmarks", response_model=ItemResponse)
def remove_bookmark(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    key = {"studentId": _require_self(caller, student_id), "recipeId": to_object_id(recipeId)}
    if not db.delete_one(Collections.BOOKMARKS, key):
        raise HTTPException(status_code=404, detail="You didn't bookmark this recipe.")
    return ItemResponse(message="Successfully removed.")


@router.get("/{student_id}/likes", response_model=ItemResponse)
def get_likes(student_id: str, caller: Caller = Depends(get_caller), db: DBAPI = Depends(get_db_api)):
    oid = _require_self(caller, student_id)
    return ItemResponse(data=normalize_docs(db.find(Collections.LIKES, {"studentId": oid}, sort=NEWEST_FIRST)))


@router.get("/{student_id}/like", response_model=ItemResponse)
def get_like(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    oid = _require_self(caller, student_id)
    doc = db.find_one(Collections.LIKES, {"studentId": oid, "recipeId": to_object_id(recipeId)})
    if doc is None:
        return ItemResponse(message="You didn't like this recipe.", data={})
    return ItemResponse(data=normalize_doc(doc))


@router.post("/{student_id}/likes", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def add_like(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Like a recipe and increment its ``like`` counter atomically."""
    key = {"studentId": _require_self(caller, student_id), "recipeId": to_object_id(recipeId)}

    def _like(session):
        if db.exists(Collections.LIKES, key, session=session):
            raise HTTPException(status_code=409, detail="You already liked this recipe.")
        like = db.insert_one(Collections.LIKES, key, session=session)
        recipe = db.find_one_and_update(
            Collections.RECIPES, {"_id": key["recipeId"]}, {"$inc": {"like": 1}}, session=session
        )
        if recipe is None:
            raise HTTPException(status_code=404, detail=f"Recipe not found: {recipeId}")
        return like

    return ItemResponse(message="Successfully liked.", data=normalize_doc(db.transaction(_like)))


@router.delete("/{student_id}/likes", response_model=ItemResponse)
def remove_like(
    student_id: str,
    recipeId: str = Query(...),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Remove a like and decrement the recipe's ``like`` counter atomically."""
    key = {"studentId": _require_self(caller, student_id), "recipeId": to_object_id(recipeId)}

    def _unlike(session):
        if db.find_one_and_delete(Collections.LIKES, key, session=session) is None:
            raise HTTPException(status_code=404, detail="You didn't like this recipe.")
        db.update_one(Collections.RECIPES, {"_id": key["recipeId"]}, {"$inc": {"like": -1}}, session=session)

    db.transaction(_unlike)
    return ItemResponse(message="Successfully removed.")


@router.get("/{student_id}/ratings", response_model=ItemResponse)
def get_student_ratings(student_id: str, caller: Caller = Depends(get_caller), db: DBAPI = Depends(get_db_api)):
    oid = _require_self(caller, student_id)
    return ItemResponse(data=normalize_docs(db.find(Collections.RATINGS, {"studentId": oid}, sort=NEWEST_FIRST)))


@router.get("/{student_id}/reviews", response_model=ItemResponse)
def get_student_reviews(student_id: str, caller: Caller = Depends(get_caller), db: DBAPI = Depends(get_db_api)):
    oid = _require_self(caller, student_id)
    return ItemResponse(data=normalize_docs(db.find(Collections.CHEF_REVIEWS, {"studentId": oid}, sort=NEWEST_FIRST)))
