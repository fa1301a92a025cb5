"""Cache process: install, activate and fetch lifecycle for one shell build."""

import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import CACHE_PREFIX, ORIGIN
from ..exceptions import (
    CacheInstallError,
    CacheMissError,
    InvalidWorkerStateError,
    NetworkError,
)
from .cache_storage import CacheStorage
from .http import Request, Response, resolve_url
from .manifest import ShellManifest, cache_name
from .messages import GET_VERSION, SKIP_WAITING, MessagePort, message_type


class WorkerState(Enum):
    """Lifecycle states of one cache process generation."""
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


# Legal transitions; REDUNDANT is reachable from every non-terminal state
_TRANSITIONS = {
    WorkerState.PARSED: {WorkerState.INSTALLING, WorkerState.REDUNDANT},
    WorkerState.INSTALLING: {WorkerState.INSTALLED, WorkerState.REDUNDANT},
    WorkerState.INSTALLED: {WorkerState.ACTIVATING, WorkerState.REDUNDANT},
    WorkerState.ACTIVATING: {WorkerState.ACTIVATED, WorkerState.REDUNDANT},
    WorkerState.ACTIVATED: {WorkerState.REDUNDANT},
    WorkerState.REDUNDANT: set(),
}

StateListener = Callable[['CacheManager', WorkerState], None]


class CacheManager:
    """
    One generation of the cache process.
    
    Owns a single versioned cache named after its build. Install fetches
    every manifest resource all-or-nothing, activate deletes every other
    generation, and fetch serves cache-first with a network fallback and a
    root-document fallback when offline. The hosting lifecycle (WorkerHost)
    calls the transition methods; tests can call them directly.
    """
    
    def __init__(
        self,
        manifest: ShellManifest,
        storage: CacheStorage,
        network,
        prefix: str = CACHE_PREFIX,
        origin: str = ORIGIN,
    ):
        """
        Initialize the generation.
        
        Args:
            manifest: Resources this build installs
            storage: Shared cache storage area
            network: Object with a `fetch(Request) -> Response` method
            prefix: Cache name prefix
            origin: Shell origin used to resolve relative URLs
        """
        self.manifest = manifest
        self.storage = storage
        self.network = network
        self.origin = origin
        self.cache_name = cache_name(prefix, manifest.build)
        self.state = WorkerState.PARSED
        self.skip_waiting_requested = False
        self.on_skip_waiting: Optional[Callable[['CacheManager'], None]] = None
        self._state_listeners: List[StateListener] = []
        self._lock = threading.RLock()
    
    @property
    def version(self) -> int:
        """Build number this generation serves."""
        return self.manifest.build
    
    def __repr__(self) -> str:
        return f"<CacheManager {self.cache_name} {self.state.value}>"
    
    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)
    
    def _transition(self, new_state: WorkerState) -> None:
        with self._lock:
            if new_state not in _TRANSITIONS[self.state]:
                raise InvalidWorkerStateError(
                    f"{self.cache_name}: cannot go from {self.state.value} to {new_state.value}"
                )
            self.state = new_state
        for listener in list(self._state_listeners):
            try:
                listener(self, new_state)
            except Exception as e:
                print(f"Warning: State listener failed for {self.cache_name}: {e}")
    
    def _resolve(self, url: str) -> str:
        return resolve_url(self.origin, url)
    
    # =============== Install ===============
    def install(self) -> None:
        """
        Fetch every manifest resource into a fresh cache generation.
        
        All-or-nothing: responses are staged and only committed when every
        fetch succeeded, so a failed install leaves no partial cache behind
        and never disturbs the generation that is currently serving.
        
        Raises:
            CacheInstallError: If any resource failed to fetch
            InvalidWorkerStateError: If called outside PARSED
        """
        self._transition(WorkerState.INSTALLING)
        print(f"AppShell: Caching app shell ({len(self.manifest.urls)} resources) into {self.cache_name}")
        
        staged: Dict[str, Response] = {}
        failed: List[str] = []
        for url in self.manifest.urls:
            absolute = self._resolve(url)
            try:
                response = self.network.fetch(Request(url, cache="reload"))
            except NetworkError as e:
                print(f"Warning: Failed to cache {url}: {e}")
                failed.append(url)
                continue
            if not response.ok:
                print(f"Warning: Failed to cache {url}: HTTP {response.status}")
                failed.append(url)
                continue
            staged[absolute] = response.clone()
        
        if failed:
            self._transition(WorkerState.REDUNDANT)
            raise CacheInstallError(
                f"Cache installation failed for {len(failed)} of {len(self.manifest.urls)} resources",
                failed_urls=failed,
            )
        
        # A leftover cache under this name would mix two installs
        self.storage.delete(self.cache_name)
        self.storage.open(self.cache_name).put_all(staged)
        
        # Become active as soon as the host allows, without waiting for tabs to close
        self.skip_waiting_requested = True
        self._transition(WorkerState.INSTALLED)
    
    # =============== Activate ===============
    def activate(self, claim: Optional[Callable[[], None]] = None) -> List[str]:
        """
        Delete every other cache generation, then claim open sessions.
        
        Args:
            claim: Callback that makes this generation control every session
            
        Returns:
            Names of the deleted caches
        """
        self._transition(WorkerState.ACTIVATING)
        
        deleted = []
        for name in self.storage.keys():
            if name != self.cache_name:
                print(f"AppShell: Deleting old cache: {name}")
                self.storage.delete(name)
                deleted.append(name)
        
        self._transition(WorkerState.ACTIVATED)
        
        # Take control of all sessions immediately
        if claim is not None:
            claim()
        return deleted
    
    def mark_redundant(self) -> None:
        """Retire this generation (replaced or failed)."""
        if self.state is not WorkerState.REDUNDANT:
            self._transition(WorkerState.REDUNDANT)
    
    # =============== Fetch ===============
    def fetch(self, request: Request) -> Response:
        """
        Answer an intercepted request: cache first, then network, then the root document.
        
        Cached entries are returned as-is with no revalidation. Only
        successful same-origin ("basic") 200 GET responses are stored; other
        responses are forwarded untouched. Requests with cache="no-store"
        always go to the network and are never stored.
        
        Raises:
            CacheMissError: If the network failed and no cached or fallback entry exists
            InvalidWorkerStateError: If this generation is not active
        """
        if self.state is not WorkerState.ACTIVATED:
            raise InvalidWorkerStateError(f"{self.cache_name} is not active ({self.state.value})")
        
        url = self._resolve(request.url)
        cache = self.storage.get(self.cache_name)
        bypass = request.cache == "no-store"
        
        if cache is not None and not bypass:
            cached = cache.match(url)
            if cached is not None:
                return cached
        
        try:
            response = self.network.fetch(request)
        except NetworkError as e:
            fallback = cache.match(self._resolve(self.manifest.fallback_url)) if cache is not None else None
            if fallback is not None:
                print(f"AppShell: Fetch failed, returning cached index: {e}")
                return fallback
            raise CacheMissError(f"No cached response for {url} and the network is unavailable") from e
        
        if bypass or request.method != "GET" or response.status != 200 or response.type != "basic":
            return response
        
        # Store a copy, return the original. Opening recreates a cache wiped by recovery.
        if self.state is WorkerState.ACTIVATED:
            self.storage.open(self.cache_name).put(url, response.clone())
        return response
    
    # =============== Messages ===============
    def handle_message(self, message: Any, port: Optional[MessagePort] = None) -> None:
        """
        Handle a message from a client.
        
        GET_VERSION replies {"version": build} on the given port;
        SKIP_WAITING asks the host to activate this generation now.
        """
        kind = message_type(message)
        if kind == GET_VERSION:
            if port is not None:
                port.post_message({"version": self.version})
        elif kind == SKIP_WAITING:
            self.skip_waiting_requested = True
            if self.on_skip_waiting is not None:
                self.on_skip_waiting(self)
