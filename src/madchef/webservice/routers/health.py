"""Health endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from madchef.madchef_api.db_api import DBAPI
from madchef.webservice.deps import get_db_api

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
def live() -> dict:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/ready")
def ready(db: DBAPI = Depends(get_db_api)):
    """Readiness check: the database must answer a ping."""
    try:
        db.ping()
    except PyMongoError as exc:
        db.logger.warning(f"Database ping failed: {exc}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
