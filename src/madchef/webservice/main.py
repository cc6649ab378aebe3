"""FastAPI entrypoint for MadChef webservice."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from madchef.commons.daos.mongodb_dao import MongoDBDAO
from madchef.commons.madchef_logger import MadChefLogger
from madchef.configs import CORS_ORIGINS, WEBSERVER_HOST, WEBSERVER_PORT
from madchef.madchef_api.db_api import DBAPI
from madchef.version import __version__
from madchef.webservice.routers.admins import router as admins_router
from madchef.webservice.routers.chefs import router as chefs_router
from madchef.webservice.routers.consults import router as consults_router
from madchef.webservice.routers.health import router as health_router
from madchef.webservice.routers.newsletter import router as newsletter_router
from madchef.webservice.routers.payments import router as payments_router
from madchef.webservice.routers.recipes import router as recipes_router
from madchef.webservice.routers.roles import router as roles_router
from madchef.webservice.routers.students import router as students_router


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    logger = MadChefLogger()
    app = FastAPI(
        title="MadChef Webservice API",
        version=__version__,
        description=(
            "REST API for the MadChef recipe marketplace. "
            "List endpoints share pagination, sorting, field projection and computed ratings."
        ),
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(_: Request, exc: DuplicateKeyError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": "Duplicate entry."})

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
        logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/", tags=["health"])
    def root() -> dict:
        return {
            "status": "up",
            "service": "madchef-webservice",
            "host": WEBSERVER_HOST,
            "port": WEBSERVER_PORT,
        }

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(recipes_router, prefix="/api/v1")
    app.include_router(chefs_router, prefix="/api/v1")
    app.include_router(students_router, prefix="/api/v1")
    app.include_router(consults_router, prefix="/api/v1")
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(roles_router, prefix="/api/v1")
    app.include_router(admins_router, prefix="/api/v1")
    app.include_router(newsletter_router, prefix="/api/v1")

    return app


app = create_app()


def run():
    """Create the MongoDB indices, then serve the app with uvicorn on the configured host and port."""
    import uvicorn

    MongoDBDAO.get_instance(create_indices=True)
    try:
        uvicorn.run(app, host=WEBSERVER_HOST, port=WEBSERVER_PORT)
    finally:
        DBAPI().close()
