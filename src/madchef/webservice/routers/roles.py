"""Role promotion endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from madchef.commons.madchef_logger import MadChefLogger
from madchef.commons.utils import to_object_id
from madchef.commons.vocabulary import ApplicationStatus, Collections, Role
from madchef.configs import APPLICATIONS_PER_PAGE
from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import IdentityProvider, get_caller, get_db_api, get_identity_provider, require_roles
from madchef.webservice.schemas.common import Caller, ItemResponse, ListResponse
from madchef.webservice.services.list_query import ListQueryParams, list_query_params, run_list_query
from madchef.webservice.services.serializers import normalize_doc

router = APIRouter(prefix="/roles", tags=["roles"])
logger = MadChefLogger()

PROMOTABLE_ROLES = (Role.CHEF, Role.ADMIN)
PROFILE_FIELDS = ("name", "email", "emailVerified", "img", "uid")


def _promotable_role(role: Optional[str]) -> Role:
    if role not in {r.value for r in PROMOTABLE_ROLES}:
        raise HTTPException(status_code=400, detail="A valid role is required: chef or admin.")
    return Role(role)


@router.post("/apply", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def apply_for_promotion(
    role: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Apply for a chef or admin role. One application per user."""
    target = _promotable_role(role)
    user_id = to_object_id(caller.user_id)
    if db.exists(Collections.ROLE_PROMOTION_APPLICANTS, {"usersId": user_id}):
        raise HTTPException(status_code=409, detail="You have already applied for a role promotion.")
    application = db.insert_one(
        Collections.ROLE_PROMOTION_APPLICANTS,
        {"usersId": user_id, "role": target.value, "status": ApplicationStatus.PENDING.value},
    )
    return ItemResponse(message="Successfully applied.", data=normalize_doc(application))


@router.get("/applied", response_model=ItemResponse)
def has_applied(
    role: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    target = _promotable_role(role)
    applied = db.exists(
        Collections.ROLE_PROMOTION_APPLICANTS, {"usersId": to_object_id(caller.user_id), "role": target.value}
    )
    return ItemResponse(data={"status": applied})


@router.get("/applications", response_model=ListResponse)
def get_applications(
    params: ListQueryParams = Depends(list_query_params),
    application_status: Optional[ApplicationStatus] = Query(default=None, alias="status"),
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ListResponse:
    filters = [] if application_status is None else [{"$match": {"status": application_status.value}}]
    return run_list_query(db, Collections.ROLE_PROMOTION_APPLICANTS, params, APPLICATIONS_PER_PAGE, filters)


@router.get("/applications/{application_id}", response_model=ItemResponse)
def get_application(
    application_id: str,
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    application = db.find_one(Collections.ROLE_PROMOTION_APPLICANTS, {"_id": to_object_id(application_id)})
    if application is None:
        raise HTTPException(status_code=404, detail=f"Application not found: {application_id}")
    return ItemResponse(data=normalize_doc(application))


@router.delete("/applications/{application_id}", response_model=ItemResponse)
def delete_application(
    application_id: str,
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    deleted = db.delete_one(Collections.ROLE_PROMOTION_APPLICANTS, {"_id": to_object_id(application_id)})
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Application not found: {application_id}")
    return ItemResponse(message="Successfully deleted.", data={"deletedCount": deleted})


@router.patch("/applications/{application_id}", response_model=ItemResponse)
def decide_application(
    application_id: str,
    result: ApplicationStatus = Query(...),
    caller: Caller = Depends(require_roles(Role.ADMIN)),
    identity: Optional[IdentityProvider] = Depends(get_identity_provider),
    db: DBAPI = Depends(get_db_api),
) -> ItemResponse:
    """Accept or reject an application.

    Accepting moves a verified student's profile into the collection of the requested role
    and removes the student document, all in one transaction. Unverified applicants are
    rejected instead.
    """
    if result == ApplicationStatus.PENDING:
        raise HTTPException(status_code=400, detail="Result must be accepted or rejected.")
    application_oid = to_object_id(application_id)

    def _decide(session):
        application = db.find_one(Collections.ROLE_PROMOTION_APPLICANTS, {"_id": application_oid}, session=session)
        if application is None:
            raise HTTPException(status_code=404, detail=f"Application not found: {application_id}")
        if application.get("status") != ApplicationStatus.PENDING.value:
            raise HTTPException(status_code=409, detail="This application has already been decided.")

        outcome = result
        if outcome == ApplicationStatus.ACCEPTED:
            outcome = _promote(application, session)
        return db.find_one_and_update(
            Collections.ROLE_PROMOTION_APPLICANTS,
            {"_id": application_oid},
            {"$set": {"status": outcome.value}},
            session=session,
        )

    def _promote(application, session) -> ApplicationStatus:
        student = db.find_one(Collections.STUDENTS, {"_id": application["usersId"]}, session=session)
        if student is None:
            raise HTTPException(status_code=404, detail="Applicant not found.")
        if not student.get("emailVerified"):
            logger.info(f"Rejecting application {application_id}: applicant email is not verified.")
            return ApplicationStatus.REJECTED

        role = Role(application["role"])
        profile = {field: student[field] for field in PROFILE_FIELDS if field in student}
        if role == Role.CHEF:
            profile.update(role=role.value, recipes=[], consultBookings=[])
            promoted = db.insert_one(Collections.CHEFS, profile, session=session)
        else:
            promoted = db.insert_one(Collections.ADMINS, dict(profile, role=role.value), session=session)
        db.delete_one(Collections.STUDENTS, {"_id": student["_id"]}, session=session)
        if identity is not None and student.get("uid"):
            identity.set_custom_claims(student["uid"], {"_id": str(promoted["_id"]), "role": role.value})
        logger.info(f"Promoted {student['_id']} to {role.value} as {promoted['_id']}.")
        return ApplicationStatus.ACCEPTED

    updated = db.transaction(_decide)
    return ItemResponse(data=normalize_doc(updated))
