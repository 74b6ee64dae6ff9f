"""
Storage entry model for persisted workspace documents.

Each row holds one serialized JSON document under a logical storage key,
matching the key/value contract of the persistence adapter.
"""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class StorageEntry(Base):
    """
    SQLAlchemy model for a key/value storage entry.

    Attributes:
        key: Logical storage key (e.g. ``api-workspace-storage``)
        value: Serialized JSON document
        updated_at: Timestamp of the last write
    """
    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="{}")
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
