"""Consultation booking endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections, ConsultStatus, Package, Role
from madchef.configs import CONSULTS_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_caller, get_db_api
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.schemas.resources import ConsultCreate, ConsultStatusUpdate
from madchef.webservice.services.filters import match_ids
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/consults", tags=["consults"])

# Statuses each party may move a consult to.
CHEF_TRANSITIONS = (ConsultStatus.ACCEPTED, ConsultStatus.REJECTED, ConsultStatus.COMPLETED)
STUDENT_TRANSITIONS = (ConsultStatus.CANCELLED,)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def book_consult(
    payload: ConsultCreate,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Book a pending consultation with a chef. Pro students only."""
    if caller.role != Role.STUDENT or caller.pkg != Package.PRO:
        raise HTTPException(status_code=403, detail="Only pro students can book consultations.")
    chef_id = to_object_id(payload.chefId)
    new_doc = dict(
        payload.model_dump(), userId=to_object_id(caller.user_id), chefId=chef_id, status=ConsultStatus.PENDING.value
    )

    def _book(session):
        consult = db.insert_one(Collections.CONSULTS, new_doc, session=session)
        if not db.update_one(
            Collections.CHEFS, {"_id": chef_id}, {"$push": {"consultBookings": consult["_id"]}}, session=session
        ):
            raise HTTPException(status_code=404, detail=f"Chef not found: {payload.chefId}")
        return consult

    return ItemResponse(message="Successfully booked.", data=normalize_doc(db.transaction(_book)))


@router.get("", response_model=ListResponse)
def get_consults(
    params: ListQueryParams = Depends(list_query_params),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """Students see their bookings, chefs the bookings made with them, admins all of them."""
    if caller.role == Role.STUDENT:
        filters = match_ids(userId=caller.user_id)
    elif caller.role == Role.CHEF:
        filters = match_ids(chefId=caller.user_id)
    else:
        filters = []
    return run_list_query(db, Collections.CONSULTS, params, CONSULTS_PER_PAGE, filters)


@router.patch("/{consult_id}/status", response_model=ItemResponse)
def update_consult_status(
    consult_id: str,
    payload: ConsultStatusUpdate,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    consult = db.find_one(Collections.CONSULTS, {"_id": to_object_id(consult_id)})
    if consult is None:
        raise HTTPException(status_code=404, detail=f"Consult not found: {consult_id}")

    caller_id = to_object_id(caller.user_id)
    if caller.role == Role.CHEF and consult.get("chefId") == caller_id:
        allowed = CHEF_TRANSITIONS
    elif caller.role == Role.STUDENT and consult.get("userId") == caller_id:
        allowed = STUDENT_TRANSITIONS
    else:
        raise HTTPException(status_code=403, detail="You are unauthorized to update this consult.")
    if payload.status not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Status must be one of: {', '.join(s.value for s in allowed)}.",
        )

    updated = db.find_one_and_update(
        Collections.CONSULTS, {"_id": consult["_id"]}, {"$set": {"status": payload.status.value}}
    )
    return ItemResponse(data=normalize_doc(updated))


@router.delete("/{consult_id}", response_model=ItemResponse)
def delete_consult(
    consult_id: str,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Delete a consult booked by or with the caller and drop it from the chef's bookings."""
    consult = db.find_one(Collections.CONSULTS, {"_id": to_object_id(consult_id)})
    if consult is None:
        raise HTTPException(status_code=404, detail=f"Consult not found: {consult_id}")
    caller_id = to_object_id(caller.user_id)
    if caller_id not in (consult.get("userId"), consult.get("chefId")):
        raise HTTPException(status_code=403, detail="You are unauthorized to delete this consult.")

    def _delete(session):
        deleted = db.delete_one(Collections.CONSULTS, {"_id": consult["_id"]}, session=session)
        db.update_one(
            Collections.CHEFS,
            {"_id": consult.get("chefId")},
            {"$pull": {"consultBookings": consult["_id"]}},
            session=session,
        )
        return deleted

    deleted = db.transaction(_delete)
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})
