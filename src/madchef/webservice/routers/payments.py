"""Payment receipt endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from madchef.commons.madchef_logger import MadChefLogger
from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import Collections, Role
from madchef.configs import RECEIPTS_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_caller, get_db_api
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.schemas.resources import ReceiptCreate
from madchef.webservice.services.filters import match_ids
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/payments", tags=["payments"])
logger = MadChefLogger()


@router.get("/receipts", response_model=ListResponse)
def get_receipts(
    params: ListQueryParams = Depends(list_query_params),
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    """Admins list every receipt; other callers list their own."""
    filters = [] if caller.role == Role.ADMIN else match_ids(userId=caller.user_id)
    return run_list_query(db, Collections.PAYMENT_RECEIPTS, params, RECEIPTS_PER_PAGE, filters)


@router.post("/receipts", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def add_receipt(
    payload: ReceiptCreate,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Store the receipt of a payment the payment processor reported to the client."""
    doc = dict(payload.model_dump(mode="json"), userId=to_object_id(caller.user_id))
    receipt = db.insert_one(Collections.PAYMENT_RECEIPTS, doc)
    logger.info(f"Stored receipt {payload.transactionId} ({payload.title.value}) for {caller.user_id}.")
    return ItemResponse(message="Successfully created.", data=normalize_doc(receipt))


@router.delete("/receipts/{receipt_id}", response_model=ItemResponse)
def delete_receipt(
    receipt_id: str,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Admins delete any receipt; other callers only their own."""
    receipt = db.find_one(Collections.PAYMENT_RECEIPTS, {"_id": to_object_id(receipt_id)})
    if receipt is None:
        raise HTTPException(status_code=404, detail=f"Receipt not found: {receipt_id}")
    if caller.role != Role.ADMIN and receipt.get("userId") != to_object_id(caller.user_id):
        raise HTTPException(status_code=403, detail="You are unauthorized to delete this receipt.")
    deleted = db.delete_one(Collections.PAYMENT_RECEIPTS, {"_id": receipt["_id"]})
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})
