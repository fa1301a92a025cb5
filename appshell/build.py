"""
Build step: regenerate the registry, shell manifest and version descriptor.

Usage:
    python -m appshell.build [ROOT]

Discovers apps from ROOT/apps/*/manifest.json, writes ROOT/registry/apps.json,
bumps the build number and writes ROOT/shell-manifest.json and
ROOT/version.json for the cache process and update checks.
"""

import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .app_index import DEFAULT_ORDER
from .worker.manifest import APP_RESOURCE_FILES, build_shell_manifest

REGISTRY_VERSION = "2.0.0"


def _now_iso(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _write_json(path: str, data: Any) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def discover_apps(root: str) -> List[Dict[str, Any]]:
    """
    Discover every app folder that has a manifest.json.
    
    Returns:
        [{"folder": str, "manifest": dict}] sorted by manifest order
    """
    apps_dir = os.path.join(root, "apps")
    if not os.path.isdir(apps_dir):
        return []
    
    apps = []
    for entry in sorted(os.listdir(apps_dir)):
        manifest_path = os.path.join(apps_dir, entry, "manifest.json")
        if not os.path.isfile(manifest_path):
            continue
        with open(manifest_path, 'r', encoding='utf-8') as f:
            manifest = json.load(f)
        apps.append({"folder": entry, "manifest": manifest})
    
    apps.sort(key=lambda app: app["manifest"].get("order") or DEFAULT_ORDER)
    return apps


def generate_registry(apps: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the registry document; the app with order 1 is pinned."""
    return {
        "version": REGISTRY_VERSION,
        "lastUpdated": _now_iso(now),
        "apps": [
            {
                "id": app["manifest"]["id"],
                "folder": app["folder"],
                "pinned": app["manifest"].get("order") == 1,
                "hidden": False,
                "order": app["manifest"].get("order") or DEFAULT_ORDER,
            }
            for app in apps
        ],
    }


def next_build(root: str) -> int:
    """Previous build number + 1, or 1 when no readable version.json exists."""
    path = os.path.join(root, "version.json")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            previous = json.load(f).get("version")
    except (IOError, json.JSONDecodeError, AttributeError):
        return 1
    if isinstance(previous, bool) or not isinstance(previous, int):
        return 1
    return previous + 1


def build(root: str, now: Optional[datetime] = None) -> int:
    """
    Regenerate every derived file under `root`.
    
    Returns:
        The new build number
    """
    print("Discovering apps...")
    apps = discover_apps(root)
    print(f"Found {len(apps)} apps: {', '.join(app['manifest']['id'] for app in apps)}\n")
    
    print("Generating:")
    _write_json(os.path.join(root, "registry", "apps.json"), generate_registry(apps, now))
    print(f"  registry/apps.json ({len(apps)} apps)")
    
    build_number = next_build(root)
    manifest = build_shell_manifest(build_number, [app["folder"] for app in apps])
    _write_json(os.path.join(root, "shell-manifest.json"), manifest.to_dict())
    print(f"  shell-manifest.json ({len(apps) * len(APP_RESOURCE_FILES)} app files, {len(manifest.urls)} total)")
    
    _write_json(os.path.join(root, "version.json"), {"version": build_number, "buildDate": _now_iso(now)})
    print(f"  version.json (build {build_number})")
    
    print("\nDone.")
    return build_number


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    root = argv[0] if argv else os.getcwd()
    build(root)
    return 0


if __name__ == "__main__":
    sys.exit(main())
