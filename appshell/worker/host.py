"""
Hosting lifecycle for the cache process.

The cache process runs in its own execution context: a daemon thread that
drains a queue of lifecycle events (update, skip-waiting, messages) one at a
time. Intercepted fetches are independent of each other and run on a small
thread pool. UI code never calls a CacheManager directly; it goes through a
ShellSession, which routes fetches and messages here.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from queue import Queue, Empty
from typing import Any, Callable, List, Optional

from ..config import CACHE_PREFIX, ORIGIN
from ..exceptions import CacheError, CacheInstallError, InvalidWorkerStateError, NetworkError
from .cache_manager import CacheManager, WorkerState
from .cache_storage import CacheStorage
from .http import Request, Response
from .manifest import ShellManifest
from .messages import MessagePort

WorkerListener = Callable[[CacheManager], None]
StateListener = Callable[[CacheManager, WorkerState], None]


class ShellSession:
    """
    One open client session (a launcher tab).
    
    `controller` is the cache generation currently answering this session's
    requests, or None when the session is uncontrolled.
    """
    
    def __init__(self, host: 'WorkerHost', name: str = "main"):
        self.host = host
        self.name = name
        self.controller: Optional[CacheManager] = host.active
        self.reload_count = 0
        self._controller_listeners: List[Callable[[Optional[CacheManager]], None]] = []
        self._reload_listeners: List[Callable[['ShellSession'], None]] = []
        self._lock = threading.Lock()
    
    def fetch(self, request: Request) -> Response:
        """
        Fetch a resource as this session would.
        
        Controlled sessions go through their cache generation, or the active
        one once theirs has been retired; uncontrolled ones go straight to the
        network.
        
        Raises:
            NetworkError: Uncontrolled fetch failed
            CacheMissError: Controlled fetch failed with nothing cached
        """
        worker = self.controller
        if worker is not None and worker.state is not WorkerState.ACTIVATED:
            worker = self.host.active
        if worker is None or worker.state is not WorkerState.ACTIVATED:
            return self.host.network.fetch(request)
        try:
            return self.host.dispatch_fetch(worker, request).result()
        except InvalidWorkerStateError:
            # Retired between routing and handling
            active = self.host.active
            if active is None or active is worker or active.state is not WorkerState.ACTIVATED:
                return self.host.network.fetch(request)
            return self.host.dispatch_fetch(active, request).result()
    
    def add_controller_listener(self, listener: Callable[[Optional[CacheManager]], None]) -> None:
        with self._lock:
            self._controller_listeners.append(listener)
    
    def remove_controller_listener(self, listener: Callable[[Optional[CacheManager]], None]) -> None:
        with self._lock:
            if listener in self._controller_listeners:
                self._controller_listeners.remove(listener)
    
    def add_reload_listener(self, listener: Callable[['ShellSession'], None]) -> None:
        with self._lock:
            self._reload_listeners.append(listener)
    
    def _set_controller(self, worker: Optional[CacheManager]) -> None:
        if worker is self.controller:
            return
        self.controller = worker
        with self._lock:
            listeners = list(self._controller_listeners)
        for listener in listeners:
            try:
                listener(worker)
            except Exception as e:
                print(f"Warning: Controller change listener failed: {e}")
    
    def reload(self) -> None:
        """Reload the session; the reloaded page is controlled by the active generation."""
        self.reload_count += 1
        self.controller = self.host.active
        with self._lock:
            listeners = list(self._reload_listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                print(f"Warning: Reload listener failed: {e}")
    
    def close(self) -> None:
        self.host.remove_session(self)


class WorkerHost:
    """Runs cache process generations and moves them through install, waiting and active."""
    
    def __init__(
        self,
        network,
        script_loader: Callable[[], ShellManifest],
        cache_storage: Optional[CacheStorage] = None,
        prefix: str = CACHE_PREFIX,
        origin: str = ORIGIN,
        max_fetch_workers: int = 4,
    ):
        """
        Initialize the host.
        
        Args:
            network: Object with a `fetch(Request) -> Response` method
            script_loader: Returns the latest ShellManifest (re-read on every update check)
            cache_storage: Shared cache storage area
            prefix: Cache name prefix
            origin: Shell origin
            max_fetch_workers: Concurrent intercepted fetches
        """
        self.network = network
        self.script_loader = script_loader
        self.cache_storage = cache_storage or CacheStorage()
        self.prefix = prefix
        self.origin = origin
        
        self.installing: Optional[CacheManager] = None
        self.waiting: Optional[CacheManager] = None
        self.active: Optional[CacheManager] = None
        
        self._sessions: List[ShellSession] = []
        self._update_found_listeners: List[WorkerListener] = []
        self._state_listeners: List[StateListener] = []
        self._lock = threading.Lock()
        
        self._events: Queue = Queue()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._executor = ThreadPoolExecutor(max_workers=max_fetch_workers, thread_name_prefix="appshell-fetch")
    
    # =============== Lifecycle ===============
    def start(self) -> None:
        """Start the cache process context in a background thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._event_loop, name="appshell-worker", daemon=True)
        self._thread.start()
    
    def stop(self) -> None:
        """Stop the cache process context gracefully."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
        self._thread = None
        self._executor.shutdown(wait=False)
    
    def register(self) -> 'WorkerHost':
        """Start the host and install the current build if nothing is installed yet."""
        self.start()
        self.update()
        return self
    
    def update(self) -> None:
        """Ask the cache process to re-read its source and install a newer build if there is one."""
        self._events.put(("update",))
    
    def post_message(self, worker: Optional[CacheManager], message: Any, port: Optional[MessagePort] = None) -> None:
        """Deliver a message to a cache process generation."""
        if worker is None:
            return
        self._events.put(("message", worker, message, port))
    
    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every event queued so far has been handled.
        
        Returns:
            True if the queue drained in time
        """
        done = threading.Event()
        self._events.put(("flush", done))
        return done.wait(timeout)
    
    def dispatch_fetch(self, worker: CacheManager, request: Request) -> Future:
        """Run an intercepted fetch in the cache process context."""
        return self._executor.submit(worker.fetch, request)
    
    # =============== Sessions ===============
    def create_session(self, name: str = "main") -> ShellSession:
        session = ShellSession(self, name)
        with self._lock:
            self._sessions.append(session)
        return session
    
    def remove_session(self, session: ShellSession) -> None:
        with self._lock:
            if session in self._sessions:
                self._sessions.remove(session)
            idle = not self._sessions
        # A waiting generation takes over once no session is left
        if idle and self.waiting is not None:
            self._events.put(("activate",))
    
    @property
    def sessions(self) -> List[ShellSession]:
        with self._lock:
            return list(self._sessions)
    
    def claim(self) -> None:
        """Make the active generation control every open session."""
        for session in self.sessions:
            session._set_controller(self.active)
    
    # =============== Listeners ===============
    def add_update_found_listener(self, listener: WorkerListener) -> None:
        with self._lock:
            self._update_found_listeners.append(listener)
    
    def remove_update_found_listener(self, listener: WorkerListener) -> None:
        with self._lock:
            if listener in self._update_found_listeners:
                self._update_found_listeners.remove(listener)
    
    def add_state_listener(self, listener: StateListener) -> None:
        with self._lock:
            self._state_listeners.append(listener)
    
    def remove_state_listener(self, listener: StateListener) -> None:
        with self._lock:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)
    
    def _on_worker_state(self, worker: CacheManager, state: WorkerState) -> None:
        with self._lock:
            listeners = list(self._state_listeners)
        for listener in listeners:
            try:
                listener(worker, state)
            except Exception as e:
                print(f"Warning: Worker state listener failed: {e}")
    
    # =============== Event loop ===============
    def _event_loop(self) -> None:
        """Handle lifecycle events one at a time."""
        while self._running:
            try:
                event = self._events.get(timeout=0.1)
            except Empty:
                continue
            try:
                self._handle_event(event)
            except Exception as e:
                # Keep handling later events
                print(f"Warning: Cache process error: {e}")
    
    def _handle_event(self, event: tuple) -> None:
        kind = event[0]
        if kind == "update":
            self._do_update()
        elif kind == "message":
            _, worker, message, port = event
            if worker.state is not WorkerState.REDUNDANT:
                worker.handle_message(message, port)
        elif kind == "skip_waiting":
            if event[1] is self.waiting:
                self._activate_waiting()
        elif kind == "activate":
            if self.waiting is not None:
                self._activate_waiting()
        elif kind == "flush":
            event[1].set()
    
    def _newest(self) -> Optional[CacheManager]:
        return self.installing or self.waiting or self.active
    
    def _do_update(self) -> None:
        try:
            manifest = self.script_loader()
        except (NetworkError, CacheError) as e:
            print(f"Warning: Update check failed: {e}")
            return
        
        current = self._newest()
        # Same build with its cache intact; a wiped cache is installed again
        if (
            current is not None
            and current.version == manifest.build
            and self.cache_storage.has(current.cache_name)
        ):
            return
        
        worker = CacheManager(manifest, self.cache_storage, self.network, prefix=self.prefix, origin=self.origin)
        worker.add_state_listener(self._on_worker_state)
        worker.on_skip_waiting = lambda w: self._events.put(("skip_waiting", w))
        
        self.installing = worker
        with self._lock:
            listeners = list(self._update_found_listeners)
        for listener in listeners:
            try:
                listener(worker)
            except Exception as e:
                print(f"Warning: Update listener failed: {e}")
        
        try:
            worker.install()
        except CacheInstallError as e:
            # The failed generation is already redundant; the active one keeps serving
            print(f"AppShell: Cache installation failed: {e}")
            self.installing = None
            return
        
        self.installing = None
        if self.waiting is not None:
            self.waiting.mark_redundant()
        self.waiting = worker
        
        if worker.skip_waiting_requested or self.active is None or not self.sessions:
            self._activate_waiting()
    
    def _activate_waiting(self) -> None:
        worker = self.waiting
        if worker is None:
            return
        self.waiting = None
        
        previous = self.active
        self.active = worker
        
        def take_over() -> None:
            # The previous generation serves until the new one is activated
            if previous is not None and previous is not worker:
                previous.mark_redundant()
            self.claim()
        
        worker.activate(claim=take_over)
