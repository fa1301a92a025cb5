"""
Update coordinator: detects newer builds and hands the session over to them.

Phases:
    UNKNOWN -> CHECKING -> UP_TO_DATE | AVAILABLE | CHECK_FAILED
    AVAILABLE -> INSTALLING -> ACTIVATING -> RELOADING
    INSTALLING/ACTIVATING -> FAILED -> RELOADING (caches wiped)

Both install paths end in a session reload, which resets the coordinator
to UNKNOWN.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .config import (
    AUTO_CHECK_DELAY,
    UPDATE_ACTIVATE_TIMEOUT,
    UPDATE_FOUND_TIMEOUT,
    UPDATE_INSTALL_TIMEOUT,
    VERSION_QUERY_TIMEOUT,
)
from .exceptions import AppShellError, UpdateTimeoutError
from .notifications import Notifier
from .storage import AUTO_UPDATE_CHECK_KEY, ScopedStorage
from .worker.cache_manager import CacheManager, WorkerState
from .worker.host import ShellSession, WorkerHost
from .worker.http import Request
from .worker.manifest import VERSION_PATH
from .worker.messages import GET_VERSION, SKIP_WAITING, MessageChannel


class UpdatePhase(Enum):
    """Phases of the update coordinator."""
    UNKNOWN = "unknown"
    CHECKING = "checking"
    UP_TO_DATE = "up_to_date"
    AVAILABLE = "available"
    CHECK_FAILED = "check_failed"
    INSTALLING = "installing"
    ACTIVATING = "activating"
    FAILED = "failed"
    RELOADING = "reloading"


class CheckStatus(Enum):
    """Outcome of one update check."""
    AVAILABLE = "available"
    UP_TO_DATE = "up_to_date"
    # No active cache process answered, so there is nothing to compare against
    UNKNOWN = "unknown"
    # The version document could not be fetched
    FAILED = "failed"


@dataclass
class UpdateCheckResult:
    """Result of check_for_updates."""
    status: CheckStatus
    remote_version: Optional[int] = None
    installed_version: Optional[int] = None
    
    @property
    def update_available(self) -> bool:
        return self.status is CheckStatus.AVAILABLE
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "updateAvailable": self.update_available,
        }
        if self.remote_version is not None:
            data["remoteVersion"] = self.remote_version
        if self.installed_version is not None:
            data["installedVersion"] = self.installed_version
        return data


@dataclass
class UpdatePrompt:
    """Persistent "update available, install it" state shown in settings."""
    remote_version: int
    installed_version: int


def parse_version_descriptor(data: Any) -> Optional[int]:
    """Return the integer build of a version.json document, or None if malformed."""
    if not isinstance(data, dict):
        return None
    version = data.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        return None
    return version


class UpdateCoordinator:
    """Checks for newer builds and performs the user-acknowledged cutover."""
    
    def __init__(
        self,
        host: WorkerHost,
        session: ShellSession,
        network,
        storage: ScopedStorage,
        notifier: Optional[Notifier] = None,
        version_path: str = VERSION_PATH,
        version_query_timeout: float = VERSION_QUERY_TIMEOUT,
        update_found_timeout: float = UPDATE_FOUND_TIMEOUT,
        update_install_timeout: float = UPDATE_INSTALL_TIMEOUT,
        update_activate_timeout: float = UPDATE_ACTIVATE_TIMEOUT,
        auto_check_delay: float = AUTO_CHECK_DELAY,
    ):
        """
        Initialize the coordinator.
        
        Args:
            host: Cache process host
            session: The session this coordinator runs in (reloaded on cutover)
            network: Object with a `fetch(Request) -> Response` method (never the cache)
            storage: Storage scoped to the auto-check preference key
            notifier: Toast sink
            version_path: Location of version.json
            version_query_timeout: Seconds to wait for the GET_VERSION reply
            update_found_timeout: Seconds to wait for a new generation to start installing
            update_install_timeout: Seconds to wait for it to finish installing
            update_activate_timeout: Seconds to wait for it to take control
            auto_check_delay: Delay before the startup check
        """
        self.host = host
        self.session = session
        self.network = network
        self.storage = storage
        self.notifier = notifier or Notifier()
        self.version_path = version_path
        self.version_query_timeout = version_query_timeout
        self.update_found_timeout = update_found_timeout
        self.update_install_timeout = update_install_timeout
        self.update_activate_timeout = update_activate_timeout
        self.auto_check_delay = auto_check_delay
        
        self.phase = UpdatePhase.UNKNOWN
        self.prompt: Optional[UpdatePrompt] = None
        self.status_text = ""
        self._phase_listeners: List[Callable[[UpdatePhase], None]] = []
        self._install_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        
        session.add_reload_listener(self._on_reload)
    
    # =============== Phase ===============
    def add_phase_listener(self, listener: Callable[[UpdatePhase], None]) -> None:
        self._phase_listeners.append(listener)
    
    def _set_phase(self, phase: UpdatePhase, status_text: Optional[str] = None) -> None:
        self.phase = phase
        if status_text is not None:
            self.status_text = status_text
        for listener in list(self._phase_listeners):
            try:
                listener(phase)
            except Exception as e:
                print(f"Warning: Update phase listener failed: {e}")
    
    def _on_reload(self, session: ShellSession) -> None:
        self.prompt = None
        self._set_phase(UpdatePhase.UNKNOWN, "")
    
    # =============== Version query ===============
    def get_installed_version(self) -> Optional[int]:
        """
        Ask the controlling cache process which build it serves.
        
        Returns:
            Build number, or None when no cache process controls the session
            or it does not answer within the timeout
        """
        controller = self.session.controller
        if controller is None:
            return None
        
        channel = MessageChannel()
        self.host.post_message(controller, {"type": GET_VERSION}, channel.port2)
        reply = channel.port1.receive(timeout=self.version_query_timeout)
        return parse_version_descriptor(reply)
    
    def fetch_remote_version(self) -> Optional[int]:
        """
        Fetch version.json from the network, bypassing every cache.
        
        Returns:
            Remote build number, or None if the fetch failed or the document is malformed
        """
        try:
            response = self.network.fetch(Request(self.version_path, cache="no-store"))
        except AppShellError as e:
            print(f"Warning: Update check failed: {e}")
            return None
        if not response.ok:
            print(f"Warning: Update check failed: HTTP {response.status}")
            return None
        try:
            return parse_version_descriptor(response.json())
        except ValueError as e:
            print(f"Warning: Update check failed: {e}")
            return None
    
    # =============== Check ===============
    def check_for_updates(self, announce: bool = True) -> UpdateCheckResult:
        """
        Compare the installed build with the latest published build.
        
        Args:
            announce: Show the persistent install prompt when an update exists
            
        Returns:
            UpdateCheckResult; a failed fetch changes no prompt state
        """
        self._set_phase(UpdatePhase.CHECKING, "Checking for updates...")
        
        remote = self.fetch_remote_version()
        if remote is None:
            self._set_phase(UpdatePhase.CHECK_FAILED, "Could not check for updates")
            return UpdateCheckResult(CheckStatus.FAILED)
        
        installed = self.get_installed_version()
        if installed is None:
            self._set_phase(UpdatePhase.UNKNOWN, "Could not determine installed version")
            return UpdateCheckResult(CheckStatus.UNKNOWN, remote_version=remote)
        
        if remote > installed:
            if announce:
                self.prompt = UpdatePrompt(remote_version=remote, installed_version=installed)
            self._set_phase(UpdatePhase.AVAILABLE, f"Update available (build {remote})")
            return UpdateCheckResult(CheckStatus.AVAILABLE, remote_version=remote, installed_version=installed)
        
        self.prompt = None
        self._set_phase(UpdatePhase.UP_TO_DATE, f"Up to date (build {installed})")
        return UpdateCheckResult(CheckStatus.UP_TO_DATE, remote_version=remote, installed_version=installed)
    
    # =============== Install ===============
    def install_update(self) -> bool:
        """
        Install the newest build and reload the session onto it.
        
        Waits for a new generation to appear, then to finish installing,
        then tells it to skip waiting and reloads once it controls the
        session. Any timeout or failure wipes every cache and reloads so
        the next load rebuilds from scratch.
        
        Returns:
            True if the coordinated cutover succeeded, False if the wipe path ran
        """
        if not self._install_lock.acquire(blocking=False):
            return False
        try:
            return self._install_update()
        finally:
            self._install_lock.release()
    
    def _install_update(self) -> bool:
        self._set_phase(UpdatePhase.INSTALLING, "Downloading update...")
        previous = self.session.controller
        
        found = threading.Event()
        installed = threading.Event()
        controller_changed = threading.Event()
        holder: Dict[str, Any] = {"worker": None, "failed": False}
        
        def on_update_found(worker: CacheManager) -> None:
            if holder["worker"] is None and worker is not previous:
                holder["worker"] = worker
                found.set()
        
        def on_state(worker: CacheManager, state: WorkerState) -> None:
            if worker is not holder["worker"]:
                return
            if state in (WorkerState.INSTALLED, WorkerState.ACTIVATING, WorkerState.ACTIVATED):
                installed.set()
            elif state is WorkerState.REDUNDANT and not installed.is_set():
                holder["failed"] = True
                installed.set()
        
        def on_controller(worker: Optional[CacheManager]) -> None:
            if worker is not None and worker is not previous:
                controller_changed.set()
        
        self.host.add_update_found_listener(on_update_found)
        self.host.add_state_listener(on_state)
        self.session.add_controller_listener(on_controller)
        try:
            # A generation that already installed and is waiting can be used directly
            waiting = self.host.waiting
            if waiting is not None and waiting is not previous:
                holder["worker"] = waiting
                found.set()
                installed.set()
            else:
                self.host.update()
            
            if not found.wait(self.update_found_timeout):
                raise UpdateTimeoutError("No new version started installing")
            if not installed.wait(self.update_install_timeout):
                raise UpdateTimeoutError("New version did not finish installing")
            if holder["failed"]:
                raise UpdateTimeoutError("New version failed to install")
            
            worker = holder["worker"]
            self._set_phase(UpdatePhase.ACTIVATING, "Activating update...")
            self.host.post_message(worker, {"type": SKIP_WAITING})
            
            if self.session.controller is not worker and not controller_changed.wait(self.update_activate_timeout):
                raise UpdateTimeoutError("New version did not take control")
        except UpdateTimeoutError as e:
            print(f"Warning: Update failed, clearing caches: {e}")
            self._recover()
            return False
        finally:
            self.host.remove_update_found_listener(on_update_found)
            self.host.remove_state_listener(on_state)
            self.session.remove_controller_listener(on_controller)
        
        self._set_phase(UpdatePhase.RELOADING, "Update installed. Reloading...")
        self.prompt = None
        self.session.reload()
        return True
    
    def _recover(self) -> None:
        """Delete every cache generation by name and reload."""
        self._set_phase(UpdatePhase.FAILED, "Update failed. Reloading...")
        for name in self.host.cache_storage.keys():
            print(f"AppShell: Deleting cache: {name}")
            self.host.cache_storage.delete(name)
        self.notifier.notify("Update could not be applied cleanly. Reloading...", "warning")
        self._set_phase(UpdatePhase.RELOADING)
        self.prompt = None
        self.session.reload()
    
    # =============== Automatic check ===============
    def auto_check_enabled(self) -> bool:
        """Automatic checks run unless the user explicitly turned them off."""
        value = self.storage.get_json(AUTO_UPDATE_CHECK_KEY, default=None)
        return value is not False
    
    def set_auto_check(self, enabled: bool) -> None:
        self.storage.set_json(AUTO_UPDATE_CHECK_KEY, bool(enabled))
    
    def run_auto_check(self) -> Optional[UpdateCheckResult]:
        """
        Run the startup check without showing the install prompt.
        
        Returns:
            The check result, or None if automatic checks are disabled
        """
        if not self.auto_check_enabled():
            return None
        result = self.check_for_updates(announce=False)
        if result.update_available:
            self.notifier.notify(
                f"A new version (build {result.remote_version}) is available. Open settings to update.",
                "info",
            )
        return result
    
    def schedule_auto_check(self) -> threading.Timer:
        """Run the automatic check after a short delay, off the boot path."""
        self.cancel_auto_check()
        self._timer = threading.Timer(self.auto_check_delay, self._auto_check_safely)
        self._timer.daemon = True
        self._timer.start()
        return self._timer
    
    def cancel_auto_check(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
    
    def _auto_check_safely(self) -> None:
        try:
            self.run_auto_check()
        except Exception as e:
            print(f"Warning: Automatic update check failed: {e}")
    
    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for the UI."""
        return {
            "phase": self.phase.value,
            "status": self.status_text,
            "prompt": (
                {"remoteVersion": self.prompt.remote_version, "installedVersion": self.prompt.installed_version}
                if self.prompt else None
            ),
            "autoCheck": self.auto_check_enabled(),
        }
