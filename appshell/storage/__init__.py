"""Storage package for durable key-value data."""

from .store import (
    KeyValueStore,
    ScopedStorage,
    unrestricted,
)
from .namespaces import (
    SHELL_PREFIX,
    RECENTS_KEY,
    THEME_KEY,
    AUTO_UPDATE_CHECK_KEY,
    SHELL_KEYS,
    build_key,
    is_shell_key,
)

__all__ = [
    'KeyValueStore',
    'ScopedStorage',
    'unrestricted',
    'SHELL_PREFIX',
    'RECENTS_KEY',
    'THEME_KEY',
    'AUTO_UPDATE_CHECK_KEY',
    'SHELL_KEYS',
    'build_key',
    'is_shell_key',
]
