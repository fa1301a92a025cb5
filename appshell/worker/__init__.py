"""Cache process package: offline cache and its hosting lifecycle."""

from .cache_manager import CacheManager, WorkerState
from .cache_storage import Cache, CacheStorage
from .host import ShellSession, WorkerHost
from .http import NetworkFetcher, Request, Response
from .manifest import (
    ShellManifest,
    build_shell_manifest,
    cache_name,
    load_shell_manifest,
)
from .messages import GET_VERSION, SKIP_WAITING, THEME_CHANGE, MessageChannel, MessagePort

__all__ = [
    'CacheManager',
    'WorkerState',
    'Cache',
    'CacheStorage',
    'ShellSession',
    'WorkerHost',
    'NetworkFetcher',
    'Request',
    'Response',
    'ShellManifest',
    'build_shell_manifest',
    'cache_name',
    'load_shell_manifest',
    'GET_VERSION',
    'SKIP_WAITING',
    'THEME_CHANGE',
    'MessageChannel',
    'MessagePort',
]
