"""Named cache generations shared by every session of the origin."""

import threading
from typing import Dict, List, Optional

from .http import Response


class Cache:
    """One named cache: a mapping from absolute request URL to stored response."""
    
    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, Response] = {}
        self._lock = threading.Lock()
    
    def match(self, url: str) -> Optional[Response]:
        """Return a copy of the stored response for `url`, or None."""
        with self._lock:
            stored = self._entries.get(url)
        return stored.clone() if stored is not None else None
    
    def put(self, url: str, response: Response) -> None:
        with self._lock:
            self._entries[url] = response
    
    def put_all(self, entries: Dict[str, Response]) -> None:
        """Store several responses at once."""
        with self._lock:
            self._entries.update(entries)
    
    def delete(self, url: str) -> bool:
        with self._lock:
            return self._entries.pop(url, None) is not None
    
    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheStorage:
    """
    The origin's cache storage area.
    
    Only the cache process writes here: bulk population during install and
    single entries during fetch. Activation only deletes.
    """
    
    def __init__(self):
        self._caches: Dict[str, Cache] = {}
        self._lock = threading.Lock()
    
    def open(self, name: str) -> Cache:
        """Return the cache called `name`, creating it if needed."""
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = Cache(name)
                self._caches[name] = cache
            return cache
    
    def get(self, name: str) -> Optional[Cache]:
        """Return the cache called `name` without creating it."""
        with self._lock:
            return self._caches.get(name)
    
    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._caches
    
    def delete(self, name: str) -> bool:
        """Delete a cache; returns True if it existed."""
        with self._lock:
            return self._caches.pop(name, None) is not None
    
    def keys(self) -> List[str]:
        """Return every cache name, oldest first."""
        with self._lock:
            return list(self._caches.keys())
    
    def match(self, url: str) -> Optional[Response]:
        """Look `url` up in every cache, oldest first."""
        for name in self.keys():
            cache = self.get(name)
            if cache is None:
                continue
            response = cache.match(url)
            if response is not None:
                return response
        return None
