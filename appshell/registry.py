"""
registry module

- Loads the app registry document and every visible app's manifest.
- Builds the AppIndex the shell searches over.
"""

from typing import Any, Callable, Dict, List, Tuple

from .app_index import DEFAULT_ORDER, AppDescriptor, AppIndex
from .config import SEARCH_THRESHOLD
from .exceptions import AppShellError, RegistryError
from .worker.http import Request, Response

REGISTRY_PATH = "./registry/apps.json"
APPS_BASE = "./apps"

FetchFn = Callable[[Request], Response]


def load_registry(fetch: FetchFn, path: str = REGISTRY_PATH) -> Dict[str, Any]:
    """
    Fetch and parse the registry document.
    
    Args:
        fetch: Callable performing the request (normally a ShellSession.fetch)
        path: Registry location
        
    Returns:
        Registry dict; a missing or invalid `apps` list becomes []
        
    Raises:
        RegistryError: If the document cannot be fetched or parsed
    """
    try:
        response = fetch(Request(path))
    except AppShellError as e:
        raise RegistryError(f"Failed to load registry: {e}") from e
    if not response.ok:
        raise RegistryError(f"Failed to load registry: {response.status}")
    
    try:
        data = response.json()
    except ValueError as e:
        raise RegistryError(f"Registry is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RegistryError("Registry must be a JSON object")
    
    if not isinstance(data.get("apps"), list):
        data["apps"] = []
    return data


def load_app_manifests(fetch: FetchFn, entries: List[Dict[str, Any]], apps_base: str = APPS_BASE) -> List[AppDescriptor]:
    """
    Load the manifest of every visible registry entry.
    
    Hidden entries are skipped. A manifest that fails to load is skipped
    with a warning; it never aborts the whole load.
    
    Returns:
        Descriptors sorted by registry order
    """
    apps: List[Tuple[int, AppDescriptor]] = []
    
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("hidden"):
            continue
        
        folder = str(entry.get("folder") or "")
        manifest_path = f"{apps_base}/{folder}/manifest.json"
        
        try:
            response = fetch(Request(manifest_path))
            if not response.ok:
                print(f"Warning: Failed to load manifest for {folder}: {response.status}")
                continue
            manifest = response.json()
            descriptor = AppDescriptor.from_manifest(
                manifest,
                folder=folder,
                order=entry.get("order") or DEFAULT_ORDER,
                pinned=bool(entry.get("pinned", False)),
            )
        except (AppShellError, ValueError, KeyError, TypeError) as e:
            print(f"Warning: Failed to load manifest for {folder}: {e}")
            continue
        
        apps.append((descriptor.order, descriptor))
    
    # Sort by order (stable, so equal orders keep registry order)
    apps.sort(key=lambda item: item[0])
    return [app for _, app in apps]


def load_app_index(
    fetch: FetchFn,
    path: str = REGISTRY_PATH,
    apps_base: str = APPS_BASE,
    threshold: float = SEARCH_THRESHOLD,
) -> AppIndex:
    """
    Load the registry and manifests into an AppIndex.
    
    A registry that cannot be loaded yields an empty index so the shell
    still boots.
    """
    try:
        registry = load_registry(fetch, path)
    except RegistryError as e:
        print(f"Warning: Failed to initialize app index: {e}")
        return AppIndex([], threshold=threshold, apps_base=apps_base)
    
    apps = load_app_manifests(fetch, registry["apps"], apps_base=apps_base)
    return AppIndex(apps, threshold=threshold, apps_base=apps_base)
