"""
MongoDB connection management.

ConnectionManager owns the client. start() launches a background task that
connects, pings on a fixed interval, and on any failure drops the client and
tries again after the same fixed delay, forever.

Usage:
    connection = ConnectionManager("mongodb://localhost:27017/landingpage")
    connection.start()
    db = connection.get_db()
    ...
    connection.stop()
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StorageUnavailable

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 5.0


class ConnectionManager:
    def __init__(
        self,
        url: Optional[str],
        name: str = "landingpage",
        retry_delay: float = RETRY_DELAY_SECONDS,
        client_factory: Callable[..., Any] = MongoClient,
    ):
        self.url = url
        self.name = name
        self.retry_delay = retry_delay
        self._client_factory = client_factory
        self._client = None
        self._db: Optional[Database] = None
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    def start(self) -> None:
        if not self.url:
            logger.warning("No MONGODB_URI provided. Running without database.")
            return
        if self._thread and self._thread.is_alive():
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="mongo-connection", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopping.set()
        if self._thread:
            self._thread.join(timeout=self.retry_delay + 1)
            self._thread = None
        self._disconnect()
        logger.info("MongoDB connection closed")

    def get_db(self) -> Database:
        db = self._db
        if db is None:
            raise StorageUnavailable()
        return db

    def connect(self) -> bool:
        """Open a client and ping it. Returns False (and logs) on failure."""
        client = None
        try:
            client = self._client_factory(self.url, serverSelectionTimeoutMS=5000)
            client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB connection error: {e}")
            if client is not None:
                client.close()
            return False
        db = client.get_default_database(default=self.name)
        with self._lock:
            self._client, self._db = client, db
        logger.info(f"MongoDB connected successfully: {db.name}")
        return True

    def check(self) -> bool:
        """Ping the live connection; drop it if the ping fails."""
        client = self._client
        if client is None:
            return False
        try:
            client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB disconnected ({e}). Attempting to reconnect...")
            self._disconnect()
            return False

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                if self.is_connected:
                    self.check()
                if not self.is_connected and not self.connect():
                    logger.info(f"Retrying MongoDB connection in {self.retry_delay:g}s")
            except Exception:
                logger.exception(f"Unexpected error in MongoDB connection task; retrying in {self.retry_delay:g}s")
            self._stopping.wait(self.retry_delay)

    def _disconnect(self) -> None:
        with self._lock:
            client, self._client, self._db = self._client, None, None
        if client is not None:
            client.close()


@contextmanager
def storage_errors():
    """Convert driver failures into StorageUnavailable."""
    try:
        yield
    except PyMongoError as e:
        logger.error(f"Storage error: {e}")
        raise StorageUnavailable() from e


def to_public(doc: Dict) -> Dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in d.items():
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d
