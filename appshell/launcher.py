"""Launcher: wires the app index, recents, theme, cache process and updates together."""

from typing import Any, Callable, Dict, List, Optional

from .app_index import AppDescriptor, AppIndex, sort_apps
from .backup import export_data, import_data, reset_data
from .config import (
    CACHE_PREFIX,
    DEFAULT_THEME,
    NETWORK_TIMEOUT,
    ORIGIN,
    RECENTS_DISPLAY,
    RECENTS_LIMIT,
    SEARCH_THRESHOLD,
)
from .notifications import Notifier
from .recents import RecencyStore, RecentApp
from .registry import load_app_index
from .storage import (
    AUTO_UPDATE_CHECK_KEY,
    RECENTS_KEY,
    SHELL_KEYS,
    THEME_KEY,
    KeyValueStore,
    ScopedStorage,
    unrestricted,
)
from .theme import ThemeManager
from .update_coordinator import UpdateCoordinator
from .worker.host import ShellSession, WorkerHost
from .worker.http import NetworkFetcher
from .worker.manifest import load_shell_manifest


class Launcher:
    """
    The shell: owns every component's state and exposes the operations the UI calls.
    
    Rendering is a projection of this state; nothing here reads UI state back.
    """
    
    def __init__(
        self,
        store: KeyValueStore,
        host: WorkerHost,
        network,
        notifier: Optional[Notifier] = None,
        search_threshold: float = SEARCH_THRESHOLD,
        recents_limit: int = RECENTS_LIMIT,
        default_theme: str = DEFAULT_THEME,
        os_preference: Optional[Callable[[], Optional[str]]] = None,
        coordinator_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the launcher.
        
        Args:
            store: Durable key-value store shared by the shell and apps
            host: Cache process host
            network: Network fetcher used for cache-bypassing requests
            notifier: Toast sink
            search_threshold: Fuzzy search threshold
            recents_limit: Recents cap
            default_theme: Fallback theme
            os_preference: Returns the OS color scheme
            coordinator_options: Extra keyword arguments for UpdateCoordinator (timeouts)
        """
        self.store = store
        self.host = host
        self.network = network
        self.notifier = notifier or Notifier()
        self.search_threshold = search_threshold
        
        self.session: ShellSession = host.create_session()
        self.app_index = AppIndex([], threshold=search_threshold)
        self.recents = RecencyStore(
            ScopedStorage(store, keys=(RECENTS_KEY,)),
            self.app_index,
            limit=recents_limit,
        )
        self.theme = ThemeManager(
            ScopedStorage(store, keys=(THEME_KEY,)),
            default=default_theme,
            os_preference=os_preference,
        )
        self.updates = UpdateCoordinator(
            host,
            self.session,
            network,
            ScopedStorage(store, keys=(AUTO_UPDATE_CHECK_KEY,)),
            notifier=self.notifier,
            **(coordinator_options or {}),
        )
        self.session.add_reload_listener(self._on_reload)
    
    # =============== Boot ===============
    def boot(self, auto_check: bool = True) -> 'Launcher':
        """
        Start the cache process, load the app index and schedule the update check.
        """
        self.host.register()
        self.theme.init()
        self.load_apps()
        if auto_check:
            self.updates.schedule_auto_check()
        return self
    
    def load_apps(self) -> AppIndex:
        """(Re)load the registry through the session so it is served from cache when possible."""
        self.app_index = load_app_index(self.session.fetch, threshold=self.search_threshold)
        self.recents.app_index = self.app_index
        return self.app_index
    
    def _on_reload(self, session: ShellSession) -> None:
        self.recents.reload()
        self.theme.init()
        self.load_apps()
    
    def shutdown(self) -> None:
        self.updates.cancel_auto_check()
        self.session.close()
        self.host.stop()
    
    # =============== Apps ===============
    def search(self, query: str) -> List[AppDescriptor]:
        return self.app_index.search(query)
    
    def list_apps(self, category: str = "all", sort: str = "recent") -> List[AppDescriptor]:
        apps = self.app_index.get_by_category(category)
        return sort_apps(apps, sort, self.recents.last_opened())
    
    def recent_apps(self, limit: int = RECENTS_DISPLAY) -> List[RecentApp]:
        return self.recents.top_n(limit)
    
    def open_app(self, app_id: str, context: Any = None) -> Optional[str]:
        """
        Open an app: record the open and attach its context for theme updates.
        
        Args:
            app_id: App to open
            context: The app's message port or callback, if embedded
            
        Returns:
            The app's entry URL, or None if the id is unknown
        """
        app = self.app_index.get_by_id(app_id)
        if app is None:
            print(f"Warning: App not found: {app_id}")
            return None
        
        self.recents.record_open(app_id)
        if context is not None:
            self.theme.attach(context)
        return self.app_index.entry_url(app)
    
    def close_app(self, context: Any = None) -> None:
        if context is not None:
            self.theme.detach(context)
    
    # =============== Data ===============
    def known_storage_keys(self) -> List[str]:
        """Every key the shell knows about: app-declared keys plus shell keys."""
        keys = self.app_index.storage_keys()
        for key in SHELL_KEYS:
            if key not in keys:
                keys.append(key)
        return keys
    
    def export(self) -> Dict[str, Any]:
        data = export_data(
            unrestricted(self.store),
            self.theme.get_theme(),
            self.recents,
            self.known_storage_keys(),
        )
        self.notifier.notify("Data exported successfully", "success")
        return data
    
    def import_backup(self, text: str, confirm: Callable[[str], bool]) -> bool:
        """
        Import a backup; reloads the session when applied.
        
        Raises:
            InvalidBackupError: If the document fails validation
        """
        applied = import_data(text, unrestricted(self.store), self.theme, self.recents, confirm)
        if applied:
            self.notifier.notify("Data imported successfully. Reloading...", "success")
            self.session.reload()
        return applied
    
    def reset(self, confirm: Callable[[str], bool]) -> bool:
        deleted = reset_data(unrestricted(self.store), self.known_storage_keys(), confirm)
        if deleted:
            self.notifier.notify("All data has been reset. Reloading...", "success")
            self.session.reload()
        return deleted


def create_launcher(store_path: Optional[str] = None, origin: str = ORIGIN) -> Launcher:
    """Build a launcher for a real origin with default configuration."""
    network = NetworkFetcher(origin, timeout=NETWORK_TIMEOUT)
    host = WorkerHost(
        network,
        lambda: load_shell_manifest(network),
        prefix=CACHE_PREFIX,
        origin=origin,
    )
    return Launcher(KeyValueStore(store_path), host, network)
