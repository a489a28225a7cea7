from datetime import datetime, timezone
from typing import Dict, Optional
from sqlmodel import Session

from app.models.storage import StorageEntry

class CartStorage:
    """Key/value persistence port for the local cart"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

class MemoryStorage(CartStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

class SqlStorage(CartStorage):
    """Visitor-scoped storage backed by StorageEntry rows"""

    def __init__(self, db: Session, visitor_id: str):
        self.db = db
        self.visitor_id = visitor_id

    def get(self, key: str) -> Optional[str]:
        entry = self.db.get(StorageEntry, (self.visitor_id, key))
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        entry = self.db.get(StorageEntry, (self.visitor_id, key))
        if entry:
            entry.value = value
            entry.updated_at = datetime.now(timezone.utc)
        else:
            entry = StorageEntry(visitor_id=self.visitor_id, key=key, value=value)
        self.db.add(entry)
        self.db.commit()

    def remove(self, key: str) -> None:
        entry = self.db.get(StorageEntry, (self.visitor_id, key))
        if entry:
            self.db.delete(entry)
            self.db.commit()
