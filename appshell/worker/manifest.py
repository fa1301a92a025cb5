"""The shell manifest: every resource a cache generation must hold."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from ..exceptions import CacheError
from .http import Request

SHELL_MANIFEST_PATH = "./shell-manifest.json"
VERSION_PATH = "./version.json"
FALLBACK_URL = "./index.html"

CORE_RESOURCES: Tuple[str, ...] = (
    "./",
    "./index.html",
    "./manifest.json",
    "./favicon.ico",
    
    # Theme system
    "./themes/tokens.css",
    "./themes/dark.css",
    "./themes/light.css",
    "./themes/futuristic.css",
    "./themes/amalfi.css",
    "./themes/app-common.css",
    
    # Launcher
    "./launcher/launcher.css",
    "./launcher/theme-manager.js",
    "./launcher/app-loader.js",
    "./launcher/search.js",
    "./launcher/settings.js",
    "./launcher/launcher.js",
    "./launcher/pwa-install.js",
    
    # App registry
    "./registry/apps.json",
)

# Every app ships exactly these files
APP_RESOURCE_FILES: Tuple[str, ...] = (
    "manifest.json",
    "index.html",
    "styles.css",
    "app.js",
    "icon.svg",
)


def cache_name(prefix: str, build: int) -> str:
    """
    Name the cache generation for a build.
    
    Examples:
        cache_name("appshell", 19) -> "appshell-v19"
    """
    return f"{prefix}-v{build}"


def app_resources(folder: str, apps_base: str = "./apps") -> List[str]:
    """List the five resources of one app."""
    return [f"{apps_base}/{folder}/{name}" for name in APP_RESOURCE_FILES]


@dataclass
class ShellManifest:
    """What one build of the cache process installs."""
    build: int
    urls: List[str] = field(default_factory=list)
    fallback_url: str = FALLBACK_URL
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShellManifest':
        """
        Parse a shell-manifest.json document.
        
        Raises:
            CacheError: If the document has no integer version or no URL list
        """
        if not isinstance(data, dict):
            raise CacheError("Shell manifest must be a JSON object")
        build = data.get("version")
        urls = data.get("urls")
        if not isinstance(build, int) or isinstance(build, bool):
            raise CacheError("Shell manifest is missing an integer 'version'")
        if not isinstance(urls, list):
            raise CacheError("Shell manifest is missing a 'urls' list")
        return cls(
            build=build,
            urls=[str(u) for u in urls],
            fallback_url=str(data.get("fallback") or FALLBACK_URL),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.build,
            "fallback": self.fallback_url,
            "urls": list(self.urls),
        }


def build_shell_manifest(build: int, app_folders: Iterable[str]) -> ShellManifest:
    """
    Build the manifest for a build: core resources plus every app's five files.
    
    Args:
        build: Build number (embedded in the cache name)
        app_folders: Folders of every app, in registry order
        
    Returns:
        ShellManifest
    """
    urls = list(CORE_RESOURCES)
    for folder in app_folders:
        urls.extend(app_resources(folder))
    return ShellManifest(build=build, urls=urls)


def load_shell_manifest(network, path: str = SHELL_MANIFEST_PATH) -> ShellManifest:
    """
    Fetch the current shell manifest, always from the network.
    
    Args:
        network: Object with a `fetch(Request) -> Response` method
        path: Manifest location relative to the origin
        
    Raises:
        NetworkError: If the fetch fails at the transport level
        CacheError: If the response is not OK or not a valid manifest
    """
    response = network.fetch(Request(path, cache="no-store"))
    if not response.ok:
        raise CacheError(f"Failed to load shell manifest: {response.status}")
    try:
        data = response.json()
    except ValueError as e:
        raise CacheError(f"Shell manifest is not valid JSON: {e}") from e
    return ShellManifest.from_dict(data)
