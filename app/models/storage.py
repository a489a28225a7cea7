from datetime import datetime, timezone
from sqlmodel import Field, SQLModel

class StorageEntry(SQLModel, table=True):
    """Per-visitor key/value row, the server-side stand-in for browser localStorage"""
    __tablename__ = "storage_entry"

    # Scope: one browser (visitor cookie), never one account
    visitor_id: str = Field(primary_key=True, max_length=64)
    key: str = Field(primary_key=True, max_length=128)

    value: str

    # Timestamps
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
