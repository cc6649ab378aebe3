"""Configuration module.

Settings are read once from environment variables at import time.
"""

import os

from madchef.webservice.services.pagination import PaginationConfig


def _env_int(name: str, default: int, minimum: int = None) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if minimum is not None and parsed < minimum:
        return default
    return parsed


PROJECT_NAME = os.getenv("MADCHEF_PROJECT_NAME", "madchef")

######################
#   Log Settings     #
######################
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_STREAM_LEVEL = os.getenv("LOG_STREAM_LEVEL", LOG_LEVEL).upper()
LOG_FILE_LEVEL = os.getenv("LOG_FILE_LEVEL", "DISABLE").upper()
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", f"{PROJECT_NAME}.log")

######################
#   MongoDB Settings #
######################
MONGO_URI = os.getenv("MONGODB_CONNECTION_STRING", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "madchef")
MONGO_TIMEOUT_MS = _env_int("MONGO_TIMEOUT_MS", 5000)

######################
#   Web Server       #
######################
WEBSERVER_HOST = os.getenv("WEBSERVER_HOST", "0.0.0.0")
WEBSERVER_PORT = _env_int("PORT", 3999)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

######################
#   List Queries     #
######################
DEFAULT_SORT_KEY = os.getenv("DEFAULT_SORT_KEY", "updatedAt")
MAX_PAGE_SIZE = _env_int("MAX_PAGE_SIZE", 100, minimum=1)

RECIPES_PER_PAGE = PaginationConfig(_env_int("RECIPES_PER_PAGE", 12, minimum=1), MAX_PAGE_SIZE)
USERS_PER_PAGE = PaginationConfig(_env_int("USERS_PER_PAGE", 20, minimum=1), MAX_PAGE_SIZE)
CHEFS_PER_PAGE = PaginationConfig(_env_int("CHEFS_PER_PAGE", 10, minimum=1), MAX_PAGE_SIZE)
RATINGS_PER_PAGE = PaginationConfig(_env_int("RATINGS_PER_PAGE", 10, minimum=1), MAX_PAGE_SIZE)
REVIEWS_PER_PAGE = PaginationConfig(_env_int("REVIEWS_PER_PAGE", 10, minimum=1), MAX_PAGE_SIZE)
RECEIPTS_PER_PAGE = PaginationConfig(_env_int("RECEIPTS_PER_PAGE", 20, minimum=1), MAX_PAGE_SIZE)
CONSULTS_PER_PAGE = PaginationConfig(_env_int("CONSULTS_PER_PAGE", 20, minimum=1), MAX_PAGE_SIZE)
APPLICATIONS_PER_PAGE = PaginationConfig(_env_int("APPLICATIONS_PER_PAGE", 20, minimum=1), MAX_PAGE_SIZE)
