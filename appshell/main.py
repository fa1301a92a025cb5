"""Main entry point for the app shell."""

import time

from .api_server import start_api_server
from .config import API_PORT, CACHE_PREFIX, ORIGIN, SEARCH_THRESHOLD, STORAGE_PATH
from .launcher import create_launcher


def print_help(launcher) -> None:
    """Print welcome message and status."""
    print("=" * 60)
    print("AppShell")
    print("=" * 60)
    print(f"\nServing apps from: {ORIGIN}")
    print(f"Storage: {STORAGE_PATH}")
    print(f"Cache prefix: {CACHE_PREFIX} (search threshold {SEARCH_THRESHOLD})")
    print(f"Apps loaded: {len(launcher.app_index)}")
    print(f"\nLocal API: http://127.0.0.1:{API_PORT}")
    print("  GET  /search?q=...     fuzzy app search")
    print("  POST /apps/<id>/open   open an app")
    print("  POST /update/check     check for a newer build")
    print("  POST /update/install   install it and reload")
    print("=" * 60)


def main():
    """Boot the shell and serve the local API until interrupted."""
    launcher = create_launcher(STORAGE_PATH, ORIGIN)
    
    try:
        launcher.boot()
    except Exception as e:
        print(f"Warning: Shell boot incomplete: {e}")
    
    print_help(launcher)
    start_api_server(launcher, port=API_PORT)
    print(f"\n✅ Shell running. Press Ctrl+C to stop.\n")
    
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
        launcher.shutdown()


if __name__ == "__main__":
    main()
