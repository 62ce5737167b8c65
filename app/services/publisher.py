"""Clear-then-write publication of the current snapshot."""

import logging

from app.models.domain import RemoteRecord, Snapshot
from app.services.record_store import RecordStore
from app.services.status import StatusFeed

logger = logging.getLogger(__name__)


class PublicationPipeline:
    """Keeps the record store at one current record of `record_type`.

    Both operations return a success flag and never raise; the cause of the
    last failure is kept in `last_error` for the caller's status message.
    """

    def __init__(self, store: RecordStore, feed: StatusFeed, record_type: str = "HealthDatas"):
        self.store = store
        self.feed = feed
        self.record_type = record_type
        self.last_error: str | None = None

    async def clear(self) -> bool:
        """Delete every record of the type. Nothing to delete counts as success."""
        self.last_error = None
        try:
            ids = await self.store.query_all(self.record_type)
        except Exception as e:
            logger.error(f"Failed to query {self.record_type} records: {e}")
            self.last_error = f"fetching records failed: {e}"
            return False

        if not ids:
            logger.debug(f"No {self.record_type} records to clear")
            return True

        try:
            await self.store.delete_all(ids)
        except Exception as e:
            logger.error(f"Failed to delete {len(ids)} {self.record_type} records: {e}")
            self.last_error = f"deleting records failed: {e}"
            return False

        logger.info(f"Cleared {len(ids)} {self.record_type} records")
        self.feed.success("Data cleared successfully.")
        return True

    async def publish(self, snapshot: Snapshot) -> bool:
        """Insert one record built from `snapshot`."""
        self.last_error = None
        record = RemoteRecord.from_snapshot(snapshot)
        try:
            record_id = await self.store.insert(self.record_type, record)
        except Exception as e:
            logger.error(f"Failed to save {self.record_type} record: {e}")
            self.last_error = f"saving record failed: {e}"
            return False

        logger.info(f"Saved {self.record_type} record {record_id}: {record.to_fields()}")
        return True

    async def replace(self, snapshot: Snapshot) -> bool:
        """Clear, then publish. The old record is kept if clearing fails."""
        if not await self.clear():
            return False
        return await self.publish(snapshot)
