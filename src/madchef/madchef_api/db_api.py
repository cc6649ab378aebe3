"""DB API module."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.client_session import ClientSession

from madchef.commons.daos.mongodb_dao import MongoDBDAO
from madchef.commons.madchef_logger import MadChefLogger
from madchef.commons.utils import utc_now


def _touch(update: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``update`` with ``updatedAt`` added to its ``$set`` clause."""
    touched = dict(update)
    touched["$set"] = dict(touched.get("$set", {}), updatedAt=utc_now())
    return touched


class DBAPI(object):
    """DB API class."""

    def __init__(self):
        self.logger = MadChefLogger()

    @classmethod
    def _dao(cls) -> MongoDBDAO:
        """Return the configured document DAO singleton."""
        return MongoDBDAO.get_instance(create_indices=False)

    def close(self):
        """Close DB resources for the active DAO instance."""
        DBAPI._dao().close()

    def ping(self) -> bool:
        """Round-trip to the server; raises on connection failure."""
        DBAPI._dao().client.admin.command("ping")
        return True

    def aggregate(self, collection: str, pipeline: List[Dict], session: ClientSession = None) -> List[Dict]:
        """Run an aggregation pipeline.

        Parameters
        ----------
        collection : str
            Collection name.
        pipeline : list of dict
            Ordered aggregation stages.
        session : ClientSession, optional
            Session of an open transaction.

        Returns
        -------
        list of dict
            Result documents.
        """
        self.logger.debug(f"Aggregating {collection}: {pipeline}")
        return list(DBAPI._dao().collection(collection).aggregate(pipeline, session=session))

    def aggregate_page(
        self, collection: str, pipeline: List[Dict], count_pipeline: List[Dict]
    ) -> Tuple[List[Dict], int]:
        """Run a page pipeline and its count pipeline concurrently.

        Parameters
        ----------
        collection : str
            Collection name.
        pipeline : list of dict
            Pipeline producing the rows of the requested page.
        count_pipeline : list of dict
            Pipeline ending in ``{"$count": "total"}``.

        Returns
        -------
        tuple
            ``(docs, total_count)``. ``total_count`` is 0 when nothing matched.
        """
        with ThreadPoolExecutor(max_workers=2) as executor:
            docs_future = executor.submit(self.aggregate, collection, pipeline)
            count_future = executor.submit(self.aggregate, collection, count_pipeline)
            docs = docs_future.result()
            counted = count_future.result()
        total_count = counted[0]["total"] if counted else 0
        return docs, total_count

    def find_one(
        self, collection: str, filter: Dict, projection: Dict = None, session: ClientSession = None
    ) -> Optional[Dict]:
        """Return the first matching document, or ``None``."""
        return DBAPI._dao().collection(collection).find_one(filter, projection or None, session=session)

    def find(self, collection: str, filter: Dict, projection: Dict = None, sort=None, limit: int = 0) -> List[Dict]:
        """Return matching documents.

        Parameters
        ----------
        collection : str
            Collection name.
        filter : dict
            Mongo filter expression.
        projection : dict, optional
            Field selection.
        sort : list, optional
            Sort expression (field/order pairs).
        limit : int, optional
            Maximum number of records; 0 means no limit.
        """
        cursor = DBAPI._dao().collection(collection).find(filter, projection or None, limit=limit)
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor)

    def exists(self, collection: str, filter: Dict, session: ClientSession = None) -> bool:
        return self.find_one(collection, filter, projection={"_id": 1}, session=session) is not None

    def insert_one(self, collection: str, doc: Dict, session: ClientSession = None) -> Dict:
        """Insert a document with ``createdAt``/``updatedAt`` timestamps and return it with its ``_id``."""
        now = utc_now()
        to_insert = dict(doc, createdAt=now, updatedAt=now)
        result = DBAPI._dao().collection(collection).insert_one(to_insert, session=session)
        to_insert["_id"] = result.inserted_id
        self.logger.debug(f"Inserted {result.inserted_id} into {collection}.")
        return to_insert

    def update_one(
        self, collection: str, filter: Dict, update: Dict, session: ClientSession = None, upsert: bool = False
    ) -> int:
        """Apply ``update`` to the first match and return the modified count."""
        result = DBAPI._dao().collection(collection).update_one(filter, _touch(update), upsert=upsert, session=session)
        return result.modified_count

    def find_one_and_update(
        self, collection: str, filter: Dict, update: Dict, session: ClientSession = None
    ) -> Optional[Dict]:
        """Apply ``update`` to the first match and return the updated document, or ``None``."""
        return (
            DBAPI._dao()
            .collection(collection)
            .find_one_and_update(filter, _touch(update), return_document=ReturnDocument.AFTER, session=session)
        )

    def delete_one(self, collection: str, filter: Dict, session: ClientSession = None) -> int:
        """Delete the first match and return the deleted count."""
        return DBAPI._dao().collection(collection).delete_one(filter, session=session).deleted_count

    def find_one_and_delete(self, collection: str, filter: Dict, session: ClientSession = None) -> Optional[Dict]:
        return DBAPI._dao().collection(collection).find_one_and_delete(filter, session=session)

    def transaction(self, callback: Callable[[ClientSession], Any]) -> Any:
        """Run ``callback(session)`` inside one transaction.

        The transaction commits when ``callback`` returns and aborts on any exception, which is
        then re-raised. Transient transaction errors are retried by the driver for a bounded time.
        The session is released on every exit path.

        Parameters
        ----------
        callback : callable
            Receives the session; every write inside must pass it along.

        Returns
        -------
        Any
            Whatever ``callback`` returned.
        """
        with DBAPI._dao().client.start_session() as session:
            return session.with_transaction(callback)
