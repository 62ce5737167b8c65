"""Stored record model - the durable form of a published snapshot."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON

from app.core.database import Base


def new_record_id() -> str:
    return uuid.uuid4().hex


class StoredRecord(Base):
    """Opaque record of a given record type (e.g. "HealthDatas")."""

    __tablename__ = "records"

    id = Column(String, primary_key=True, default=new_record_id)
    record_type = Column(String, nullable=False, index=True)
    fields = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
