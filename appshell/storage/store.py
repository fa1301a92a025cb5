"""Durable key-value storage shared by the shell and every app."""

import json
import os
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import StorageScopeError
from .namespaces import key_matches


class KeyValueStore:
    """
    String-to-string durable storage (the shell's local storage area).
    
    Backed by a JSON file when a path is given, otherwise purely in memory.
    The whole file is rewritten on every mutation through a temporary file
    that replaces the original. Several processes sharing one file are
    last-write-wins.
    """
    
    def __init__(self, path: Optional[str] = None):
        """
        Initialize the store.
        
        Args:
            path: Path to the JSON backing file (None keeps data in memory only)
        """
        self.path = os.path.expanduser(path) if path else None
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()
        
        if self.path:
            self._load()
    
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for `key`, or None if missing."""
        with self._lock:
            return self._data.get(key)
    
    def set_item(self, key: str, value: str) -> None:
        """Store `value` under `key` and persist."""
        with self._lock:
            self._data[key] = str(value)
            self._save()
    
    def remove_item(self, key: str) -> None:
        """Remove `key` if present and persist."""
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._save()
    
    def keys(self) -> List[str]:
        """Return every stored key."""
        with self._lock:
            return list(self._data.keys())
    
    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._data.clear()
            self._save()
    
    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
    
    def _load(self) -> None:
        """Load stored data from disk."""
        if not os.path.exists(self.path):
            return
        
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                self._data = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()}
            else:
                print(f"Warning: Ignoring storage file {self.path}: expected a JSON object")
        except (json.JSONDecodeError, IOError) as e:
            print(f"Warning: Failed to load storage from {self.path}: {e}")
    
    def _save(self) -> None:
        """Save stored data to disk."""
        if not self.path:
            return
        
        try:
            # Ensure directory exists
            data_dir = os.path.dirname(self.path)
            if data_dir and not os.path.exists(data_dir):
                os.makedirs(data_dir, exist_ok=True)
            
            # Readers only ever see a complete file
            tmp_path = self.path + ".tmp"
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_path, self.path)
        except IOError as e:
            print(f"Warning: Failed to save storage to {self.path}: {e}")


class ScopedStorage:
    """
    A view of a KeyValueStore narrowed to the keys one component owns.
    
    Components receive one of these at construction instead of reaching for
    the whole store, so recents cannot touch app data and vice versa.
    """
    
    def __init__(self, store: KeyValueStore, keys: Iterable[str] = (), prefixes: Iterable[str] = ()):
        """
        Initialize the scoped view.
        
        Args:
            store: Underlying store
            keys: Exact keys this view may touch
            prefixes: Key prefixes this view may touch
        """
        self.store = store
        self.allowed_keys = frozenset(keys)
        self.allowed_prefixes = tuple(prefixes)
    
    def owns(self, key: str) -> bool:
        """Return True if `key` is visible through this view."""
        return key_matches(key, self.allowed_keys, self.allowed_prefixes)
    
    def _check(self, key: str) -> None:
        if not self.owns(key):
            raise StorageScopeError(f"Key '{key}' is outside this storage scope")
    
    def get_item(self, key: str) -> Optional[str]:
        self._check(key)
        return self.store.get_item(key)
    
    def set_item(self, key: str, value: str) -> None:
        self._check(key)
        self.store.set_item(key, value)
    
    def remove_item(self, key: str) -> None:
        self._check(key)
        self.store.remove_item(key)
    
    def keys(self) -> List[str]:
        """Return the stored keys visible through this view."""
        return [key for key in self.store.keys() if self.owns(key)]
    
    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Read and decode a JSON value.
        
        Corrupt or missing data yields `default`; this never raises for
        malformed content.
        
        Args:
            key: Storage key
            default: Value returned when the key is missing or unreadable
            
        Returns:
            Decoded value or default
        """
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            print(f"Warning: Corrupt value under '{key}', using default: {e}")
            return default
    
    def set_json(self, key: str, value: Any) -> None:
        """Encode `value` as JSON and store it."""
        self.set_item(key, json.dumps(value))


def unrestricted(store: KeyValueStore) -> ScopedStorage:
    """Return a view over every key (used by export/import/reset)."""
    return ScopedStorage(store, prefixes=("",))


__all__ = [
    'KeyValueStore',
    'ScopedStorage',
    'unrestricted',
]
