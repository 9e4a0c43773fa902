"""MongoDB persistence of completed analyses.

One document per successful analysis. Records are only ever inserted and
read back; the service never updates or deletes them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from src.errors import PersistenceError
from src.utils.config import StorageConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Location:
    """Where the photo was taken, as reported by the client."""

    latitude: float | None = None
    longitude: float | None = None


@dataclass
class AnalysisRecord:
    """A stored analysis: caller metadata plus the result fields."""

    uid: str | None
    phone: str | None
    image_url: str
    location: Location
    schema_version: str
    result: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict[str, Any]:
        """Flatten the record into the stored document layout.

        Result fields sit at the top level next to the metadata. Metadata
        keys win over result keys of the same name.
        """
        doc = dict(self.result)
        doc.update(
            {
                "uid": self.uid,
                "phone": self.phone,
                "image_url": self.image_url,
                "location": {
                    "latitude": self.location.latitude,
                    "longitude": self.location.longitude,
                },
                "schema_version": self.schema_version,
                "created_at": self.created_at,
            }
        )
        return doc


def make_image_url(now: datetime | None = None) -> str:
    """Build the image reference stored with a record."""
    now = now or datetime.now(timezone.utc)
    return f"uploaded_images/{int(now.timestamp() * 1000)}.jpg"


class AnalysisStore:
    """Inserts and lists analysis documents in a MongoDB collection.

    Args:
        config: Storage configuration.
        collection: Pre-built collection handle. Opened from ``config`` when
            omitted.
    """

    def __init__(
        self, config: StorageConfig, collection: Collection | None = None
    ) -> None:
        self.config = config
        if collection is None:
            client: MongoClient = MongoClient(config.mongo_uri, tz_aware=True)
            collection = client[config.database][config.collection]
            logger.info(
                "Using MongoDB collection %s.%s", config.database, config.collection
            )
        self._collection = collection

    def save(self, record: AnalysisRecord) -> str:
        """Insert a record and return its document id.

        Raises:
            PersistenceError: If the insert fails.
        """
        try:
            inserted = self._collection.insert_one(record.to_document())
        except PyMongoError as exc:
            logger.error("Failed to store analysis for uid=%s: %s", record.uid, exc)
            raise PersistenceError(f"Failed to store analysis: {exc}") from exc

        doc_id = str(inserted.inserted_id)
        logger.info("Stored analysis %s for uid=%s", doc_id, record.uid)
        return doc_id

    def list_for_user(self, uid: str | None, limit: int = 20) -> list[dict[str, Any]]:
        """Return a caller's most recent analyses, newest first.

        Args:
            uid: Caller subject id. Anonymous records have ``None``.
            limit: Maximum number of documents to return.

        Returns:
            Documents with ``_id`` as a string and ``created_at`` in ISO format.

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            cursor = (
                self._collection.find({"uid": uid})
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            documents = list(cursor)
        except PyMongoError as exc:
            logger.error("Failed to list analyses for uid=%s: %s", uid, exc)
            raise PersistenceError(f"Failed to list analyses: {exc}") from exc

        for doc in documents:
            doc["_id"] = str(doc["_id"])
            if isinstance(doc.get("created_at"), datetime):
                doc["created_at"] = doc["created_at"].isoformat()
        return documents
