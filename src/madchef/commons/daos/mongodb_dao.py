"""MongoDB DAO module."""

from threading import Lock

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from madchef.commons.madchef_logger import MadChefLogger
from madchef.commons.vocabulary import Collections
from madchef.configs import MONGO_DB, MONGO_TIMEOUT_MS, MONGO_URI


class MongoDBDAO(object):
    """Owns the process-wide ``MongoClient``. Use :meth:`get_instance`."""

    _instance: "MongoDBDAO" = None
    _lock = Lock()

    # (collection, keys, unique)
    INDICES = [
        (Collections.RECIPES, [("updatedAt", DESCENDING)], False),
        (Collections.RECIPES, [("status", ASCENDING), ("updatedAt", DESCENDING)], False),
        (Collections.RECIPES, [("author", ASCENDING)], False),
        (Collections.CHEFS, [("updatedAt", DESCENDING)], False),
        (Collections.STUDENTS, [("updatedAt", DESCENDING)], False),
        (Collections.STUDENTS, [("name", ASCENDING)], False),
        (Collections.RATINGS, [("recipeId", ASCENDING), ("studentId", ASCENDING)], True),
        (Collections.CHEF_REVIEWS, [("chefId", ASCENDING), ("studentId", ASCENDING)], True),
        (Collections.BOOKMARKS, [("studentId", ASCENDING), ("recipeId", ASCENDING)], True),
        (Collections.LIKES, [("studentId", ASCENDING), ("recipeId", ASCENDING)], True),
        (Collections.NEWSLETTER_SUBSCRIBERS, [("email", ASCENDING)], True),
        (Collections.ROLE_PROMOTION_APPLICANTS, [("usersId", ASCENDING)], True),
        (Collections.PAYMENT_RECEIPTS, [("userId", ASCENDING), ("updatedAt", DESCENDING)], False),
    ]

    @classmethod
    def get_instance(cls, create_indices: bool = False) -> "MongoDBDAO":
        """Return the shared DAO, connecting on first use."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls(create_indices=create_indices)
            return cls._instance

    def __init__(self, create_indices: bool = False):
        self.logger = MadChefLogger()
        self._client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS, tz_aware=True)
        self._db = self._client[MONGO_DB]
        self.logger.debug(f"MongoDB DAO connected to database {MONGO_DB}.")
        if create_indices:
            self.create_indices()

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def db(self) -> Database:
        return self._db

    def collection(self, name: str) -> Collection:
        return self._db[name]

    def create_indices(self):
        """Create the sort and uniqueness indices the webservice relies on."""
        for collection, keys, unique in MongoDBDAO.INDICES:
            self._db[collection].create_index(keys, unique=unique)
        self.logger.info(f"Ensured {len(MongoDBDAO.INDICES)} indices on {MONGO_DB}.")

    def close(self):
        """Close the client and drop the shared instance."""
        self._client.close()
        with MongoDBDAO._lock:
            if MongoDBDAO._instance is self:
                MongoDBDAO._instance = None
