"""Record store holding the published snapshot."""

import logging
from abc import ABC, abstractmethod
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import StoreDeleteError, StoreInsertError, StoreQueryError
from app.models.domain import RemoteRecord
from app.models.record import StoredRecord, new_record_id

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Remote store of opaque records. No transactions span calls."""

    @abstractmethod
    async def query_all(self, record_type: str) -> set[str]:
        """Return the ids of every record of `record_type`."""

    @abstractmethod
    async def delete_all(self, ids: set[str]) -> None:
        """Delete the given records in one operation."""

    @abstractmethod
    async def insert(self, record_type: str, record: RemoteRecord) -> str:
        """Insert one record and return its id."""


class SqlRecordStore(RecordStore):
    """RecordStore backed by a SQLAlchemy async database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def query_all(self, record_type: str) -> set[str]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(StoredRecord.id).where(StoredRecord.record_type == record_type)
                )
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreQueryError(str(e)) from e

    async def delete_all(self, ids: set[str]) -> None:
        if not ids:
            return

        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    delete(StoredRecord).where(StoredRecord.id.in_(ids))
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreDeleteError(str(e)) from e

        if result.rowcount != len(ids):
            raise StoreDeleteError(f"deleted {result.rowcount} of {len(ids)} records")
        logger.debug(f"Deleted {len(ids)} records")

    async def insert(self, record_type: str, record: RemoteRecord) -> str:
        record_id = new_record_id()
        row = StoredRecord(id=record_id, record_type=record_type, fields=record.to_fields())
        try:
            async with self.session_maker() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreInsertError(str(e)) from e

        logger.debug(f"Inserted {record_type} record {record_id}")
        return record_id
