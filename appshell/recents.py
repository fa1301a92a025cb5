"""Recently opened apps, bounded and persisted on every change."""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .app_index import AppDescriptor, AppIndex
from .config import RECENTS_LIMIT
from .storage import RECENTS_KEY, ScopedStorage


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RecencyRecord:
    """One app-open record."""
    app_id: str
    timestamp: int
    
    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.app_id, "timestamp": self.timestamp}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecencyRecord':
        return cls(app_id=str(data["id"]), timestamp=int(data["timestamp"]))


@dataclass
class RecentApp:
    """An app resolved from a recency record, for display."""
    app: AppDescriptor
    last_opened: int
    
    def to_dict(self) -> Dict[str, Any]:
        data = self.app.to_dict()
        data["lastOpened"] = self.last_opened
        return data


def parse_records(raw: Any) -> List[RecencyRecord]:
    """
    Parse stored records; anything malformed yields an empty list.
    """
    if not isinstance(raw, list):
        return []
    try:
        return [RecencyRecord.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError):
        return []


class RecencyStore:
    """
    Bounded record of app-open events.
    
    Every mutation is written to storage. Two sessions sharing one storage
    area can overwrite each other's latest open (last write wins); recents
    are best-effort.
    """
    
    def __init__(
        self,
        storage: ScopedStorage,
        app_index: Optional[AppIndex] = None,
        limit: int = RECENTS_LIMIT,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the store and load saved records.
        
        Args:
            storage: Storage scoped to the recents key
            app_index: Index used to resolve app ids
            limit: Maximum number of records kept
            clock: Returns the current time in milliseconds
        """
        self.storage = storage
        self.app_index = app_index
        self.limit = limit
        self.clock = clock
        self._records: List[RecencyRecord] = self._load()
    
    def record_open(self, app_id: str) -> None:
        """
        Record that an app was opened.
        
        Args:
            app_id: Id of the opened app
        """
        timestamp = self.clock()
        
        for record in self._records:
            if record.app_id == app_id:
                record.timestamp = timestamp
                break
        else:
            self._records.append(RecencyRecord(app_id, timestamp))
        
        # Keep only the most recent entries
        if len(self._records) > self.limit:
            self._records.sort(key=lambda r: r.timestamp, reverse=True)
            self._records = self._records[:self.limit]
        
        self._save()
    
    def top_n(self, n: int) -> List[RecentApp]:
        """
        Get the most recently opened apps.
        
        Ids that no longer resolve to an app are skipped.
        
        Args:
            n: Maximum number of apps to return
            
        Returns:
            RecentApp entries, most recent first
        """
        if self.app_index is None or n <= 0:
            return []
        
        result: List[RecentApp] = []
        for record in sorted(self._records, key=lambda r: r.timestamp, reverse=True):
            app = self.app_index.get_by_id(record.app_id)
            if app is None:
                continue
            result.append(RecentApp(app, record.timestamp))
            if len(result) >= n:
                break
        return result
    
    def last_opened(self) -> Dict[str, int]:
        """Map of app id to last-opened timestamp."""
        return {r.app_id: r.timestamp for r in self._records}
    
    def records(self) -> List[RecencyRecord]:
        """Copy of every record."""
        return [RecencyRecord(r.app_id, r.timestamp) for r in self._records]
    
    def replace(self, records: List[RecencyRecord]) -> None:
        """Overwrite every record (used by import)."""
        self._records = [RecencyRecord(r.app_id, r.timestamp) for r in records]
        self._save()
    
    def clear(self) -> None:
        self._records = []
        self.storage.remove_item(RECENTS_KEY)
    
    def reload(self) -> None:
        """Re-read records from storage."""
        self._records = self._load()
    
    def __len__(self) -> int:
        return len(self._records)
    
    def _load(self) -> List[RecencyRecord]:
        raw = self.storage.get_json(RECENTS_KEY, default=[])
        records = parse_records(raw)
        if raw and not records:
            print("Warning: Failed to load recents, starting empty")
        return records
    
    def _save(self) -> None:
        self.storage.set_json(RECENTS_KEY, [r.to_dict() for r in self._records])


def format_relative_time(timestamp: int, now: Optional[int] = None) -> str:
    """
    Format a millisecond timestamp relative to now.
    
    Examples:
        30 seconds ago -> "just now"
        5 minutes ago -> "5m ago"
        3 days ago -> "3d ago"
    """
    now = now if now is not None else now_ms()
    seconds = (now - timestamp) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    
    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return datetime.fromtimestamp(timestamp / 1000).date().isoformat()
