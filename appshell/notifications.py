"""Transient, non-blocking notifications (toasts) for the launcher UI."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


@dataclass
class Notification:
    """A short status message shown once."""
    message: str
    kind: str = "info"
    created_at: float = field(default_factory=time.time)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "kind": self.kind, "createdAt": self.created_at}


class Notifier:
    """Thread-safe store of pending notifications; the UI drains it."""
    
    def __init__(self, max_pending: int = 20):
        self.max_pending = max_pending
        self._pending: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []
        self._lock = threading.Lock()
    
    def notify(self, message: str, kind: str = "info") -> Notification:
        """
        Queue a notification.
        
        Args:
            message: Text to show
            kind: "info", "success", "warning" or "error"
        """
        notification = Notification(message, kind)
        with self._lock:
            self._pending.append(notification)
            if len(self._pending) > self.max_pending:
                self._pending = self._pending[-self.max_pending:]
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(notification)
            except Exception as e:
                print(f"Warning: Notification listener failed: {e}")
        return notification
    
    def drain(self) -> List[Notification]:
        """Return and clear every pending notification."""
        with self._lock:
            pending = self._pending
            self._pending = []
            return pending
    
    def add_listener(self, listener: Callable[[Notification], None]) -> None:
        with self._lock:
            self._listeners.append(listener)
