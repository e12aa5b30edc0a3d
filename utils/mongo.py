"""
MongoDB store for API request logs.

The connection is opened on first write. If the server cannot be reached
the store stays disabled for the rest of the process and every write
becomes a no-op.
"""
import logging
from datetime import datetime, timezone

from django.conf import settings
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

logger = logging.getLogger(__name__)

COLLECTION_NAME = 'api_logs'
TIMEOUT_MS = 3000

INDEXES = [
    [('timestamp', DESCENDING)],
    [('endpoint', ASCENDING), ('timestamp', DESCENDING)],
    [('user_id', ASCENDING), ('timestamp', DESCENDING)],
    [('response_status', ASCENDING)],
]


class RequestLogStore:
    """Lazily connected handle on the ``api_logs`` collection."""

    def __init__(self, uri=None, db_name=None):
        self.uri = uri
        self.db_name = db_name
        self.available = None  # unknown until the first connection attempt
        self._collection = None

    def connect(self):
        """Return the log collection, or None when MongoDB is unreachable."""
        if self.available is False:
            return None
        if self._collection is not None:
            return self._collection

        uri = self.uri or settings.MONGODB_URI
        client = MongoClient(uri, serverSelectionTimeoutMS=TIMEOUT_MS, connectTimeoutMS=TIMEOUT_MS)
        try:
            client.admin.command('ping')
        except ConnectionFailure as e:
            logger.warning("MongoDB unreachable at %s, API request logging disabled: %s", uri, e)
            client.close()
            self.available = False
            return None

        collection = client[self.db_name or settings.MONGODB_NAME][COLLECTION_NAME]
        self._create_indexes(collection)
        self._collection = collection
        self.available = True
        return collection

    @staticmethod
    def _create_indexes(collection):
        try:
            for keys in INDEXES:
                collection.create_index(keys)
        except PyMongoError as e:
            logger.warning("Could not create indexes on %s: %s", COLLECTION_NAME, e)

    def insert(self, entry):
        """Write one log entry. Returns False if it was not stored."""
        collection = self.connect()
        if collection is None:
            return False
        try:
            collection.insert_one(entry)
        except PyMongoError as e:
            logger.warning("Could not write API request log: %s", e)
            return False
        return True


store = RequestLogStore()


def log_api_request(endpoint, method, user_id, request_params,
                    response_status, execution_time_ms, results_count=None):
    """
    Record one API request.

    Args:
        endpoint: request path
        method: HTTP method
        user_id: id of the session user, if any
        request_params: query parameters
        response_status: HTTP status code returned
        execution_time_ms: time spent in the view stack
        results_count: number of items in a list response (optional)
    """
    if not settings.API_LOGGING_ENABLED:
        return False

    entry = {
        'endpoint': endpoint,
        'method': method,
        'user_id': user_id,
        'request_params': request_params,
        'response_status': response_status,
        'execution_time_ms': execution_time_ms,
        'timestamp': datetime.now(timezone.utc),
    }
    if results_count is not None:
        entry['results_count'] = results_count

    return store.insert(entry)
