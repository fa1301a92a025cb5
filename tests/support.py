"""Shared fakes for the test suite: an in-process network, a clock and sample sites."""

import json

from appshell.exceptions import NetworkError
from appshell.launcher import Launcher
from appshell.storage import KeyValueStore
from appshell.worker.host import WorkerHost
from appshell.worker.http import Response, resolve_url, same_origin
from appshell.worker.manifest import ShellManifest, load_shell_manifest

ORIGIN = "http://shell.test/"

# Small timeouts so failure paths finish quickly
FAST_TIMEOUTS = {
    "version_query_timeout": 1.0,
    "update_found_timeout": 0.5,
    "update_install_timeout": 2.0,
    "update_activate_timeout": 2.0,
    "auto_check_delay": 0.0,
}

SAMPLE_APPS = {
    "todo-list": {
        "id": "todo-list", "name": "Todo List", "description": "Simple task tracking",
        "categories": ["productivity"], "order": 1, "storageKeys": ["todos"],
    },
    "notes": {
        "id": "notes", "name": "Notes", "description": "Quick notes",
        "categories": ["productivity", "writing"], "order": 2, "storageKeys": ["appshell-notes"],
    },
    "kanban-board": {
        "id": "kanban-board", "name": "Kanban Board", "description": "Drag cards between columns",
        "categories": ["planning"], "order": 3, "storageKeys": ["kanbanBoard"],
    },
}


class FakeNetwork:
    """In-process stand-in for NetworkFetcher: serves a dict of routes and counts calls."""

    def __init__(self, origin=ORIGIN):
        self.origin = origin
        self.routes = {}
        self.failing = set()
        self.offline = False
        self.calls = []

    def add(self, url, body=b"", status=200):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[resolve_url(self.origin, url)] = (status, body)

    def fail(self, url):
        self.failing.add(resolve_url(self.origin, url))

    def calls_for(self, url):
        target = resolve_url(self.origin, url)
        return [c for c in self.calls if c == target]

    def fetch(self, request):
        url = resolve_url(self.origin, request.url)
        self.calls.append(url)
        if self.offline or url in self.failing:
            raise NetworkError(f"offline: {url}")
        status, body = self.routes.get(url, (404, b"not found"))
        return Response(
            url=url,
            status=status,
            body=body,
            type="basic" if same_origin(url, self.origin) else "cors",
        )


class FakeClock:
    """Millisecond clock that moves one second forward on every read."""

    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        self.now += 1000
        return self.now


def publish_build(network, build, urls=("./", "./index.html", "./app.js")):
    """Serve every URL of a build plus its shell manifest and version.json."""
    for url in urls:
        network.add(url, f"build {build}: {url}")
    manifest = ShellManifest(build=build, urls=list(urls))
    network.add("./shell-manifest.json", manifest.to_dict())
    network.add("./version.json", {"version": build, "buildDate": "2026-10-18T00:00:00Z"})
    return manifest


def publish_site(network, build, apps=SAMPLE_APPS):
    """Serve a registry, every app manifest and a shell build that caches them."""
    urls = ["./", "./index.html", "./registry/apps.json"]
    urls.extend(f"./apps/{folder}/manifest.json" for folder in apps)
    manifest = publish_build(network, build, urls=tuple(urls))

    network.add("./registry/apps.json", {
        "version": "2.0.0",
        "apps": [
            {"id": m["id"], "folder": folder, "order": m["order"], "pinned": m["order"] == 1, "hidden": False}
            for folder, m in apps.items()
        ],
    })
    for folder, app_manifest in apps.items():
        network.add(f"./apps/{folder}/manifest.json", app_manifest)
    return manifest


def make_host(network):
    return WorkerHost(network, lambda: load_shell_manifest(network), prefix="appshell", origin=network.origin)


def make_launcher(network, store=None):
    """Boot a launcher on the sample site (build 1) and wait for its cache to install."""
    publish_site(network, 1)
    host = make_host(network)
    launcher = Launcher(
        store if store is not None else KeyValueStore(),
        host,
        network,
        default_theme="dark",
        coordinator_options=dict(FAST_TIMEOUTS),
    )
    launcher.boot(auto_check=False)
    if not host.flush(5):
        raise RuntimeError("cache process did not settle")
    return launcher
