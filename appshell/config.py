"""Configuration for the app shell."""

import os
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

SUPPORTED_THEMES = ["dark", "light", "futuristic", "amalfi"]


class Config:
    """Configuration class for the app shell."""
    
    def __init__(self):
        """Initialize configuration from environment variables."""
        # Origin the shell and every cached resource is served from
        self.origin = os.getenv("APPSHELL_ORIGIN", "http://127.0.0.1:8000/")
        if not self.origin.endswith("/"):
            self.origin += "/"
        
        # Cache generations are named "<prefix>-v<build>"
        self.cache_prefix = os.getenv("APPSHELL_CACHE_PREFIX", "appshell")
        
        # Fuzzy search: apps scoring above this are dropped from results.
        # Historical values ranged from 0.25 to 0.4.
        self.search_threshold = float(os.getenv("APPSHELL_SEARCH_THRESHOLD", "0.4"))
        
        # Recently opened apps
        self.recents_limit = int(os.getenv("APPSHELL_RECENTS_LIMIT", "20"))
        self.recents_display = int(os.getenv("APPSHELL_RECENTS_DISPLAY", "5"))
        
        # Update protocol timeouts (in seconds)
        self.version_query_timeout = float(os.getenv("APPSHELL_VERSION_QUERY_TIMEOUT", "2.0"))
        self.update_found_timeout = float(os.getenv("APPSHELL_UPDATE_FOUND_TIMEOUT", "15.0"))
        self.update_install_timeout = float(os.getenv("APPSHELL_UPDATE_INSTALL_TIMEOUT", "30.0"))
        self.update_activate_timeout = float(os.getenv("APPSHELL_UPDATE_ACTIVATE_TIMEOUT", "30.0"))
        
        # Delay before the automatic update check so it does not compete with boot
        self.auto_check_delay = float(os.getenv("APPSHELL_AUTO_CHECK_DELAY", "3.0"))
        
        # Network requests made by the cache process
        self.network_timeout = float(os.getenv("APPSHELL_NETWORK_TIMEOUT", "10.0"))
        
        # Durable key-value storage (app data, recents, theme, preferences)
        self.storage_path = os.getenv(
            "APPSHELL_STORAGE_PATH", os.path.expanduser("~/.appshell_storage.json")
        )
        
        # Local API (for the launcher UI)
        self.api_port = int(os.getenv("APPSHELL_API_PORT", "8790"))
        
        self.default_theme = os.getenv("APPSHELL_DEFAULT_THEME", "dark").lower()
        
        # Validate configuration
        self._validate()
    
    def _validate(self):
        """Validate configuration values."""
        if not 0.0 <= self.search_threshold <= 1.0:
            raise ValueError(
                f"Search threshold must be between 0 and 1, got {self.search_threshold}"
            )
        
        if self.recents_limit <= 0:
            raise ValueError(f"Recents limit must be positive, got {self.recents_limit}")
        
        timeouts: Dict[str, Any] = {
            "version query timeout": self.version_query_timeout,
            "update found timeout": self.update_found_timeout,
            "update install timeout": self.update_install_timeout,
            "update activate timeout": self.update_activate_timeout,
            "network timeout": self.network_timeout,
        }
        for name, value in timeouts.items():
            if value <= 0:
                raise ValueError(f"{name.capitalize()} must be positive, got {value}")
        
        if self.auto_check_delay < 0:
            raise ValueError(f"Auto check delay must not be negative, got {self.auto_check_delay}")
        
        if self.default_theme not in SUPPORTED_THEMES:
            raise ValueError(
                f"Invalid default theme '{self.default_theme}'. "
                f"Must be one of: {', '.join(SUPPORTED_THEMES)}"
            )


# Create a global config instance
_config = Config()

# Expose configuration values as module-level variables
ORIGIN = _config.origin
CACHE_PREFIX = _config.cache_prefix
SEARCH_THRESHOLD = _config.search_threshold
RECENTS_LIMIT = _config.recents_limit
RECENTS_DISPLAY = _config.recents_display
VERSION_QUERY_TIMEOUT = _config.version_query_timeout
UPDATE_FOUND_TIMEOUT = _config.update_found_timeout
UPDATE_INSTALL_TIMEOUT = _config.update_install_timeout
UPDATE_ACTIVATE_TIMEOUT = _config.update_activate_timeout
AUTO_CHECK_DELAY = _config.auto_check_delay
NETWORK_TIMEOUT = _config.network_timeout
STORAGE_PATH = _config.storage_path
API_PORT = _config.api_port
DEFAULT_THEME = _config.default_theme

__all__ = [
    "Config",
    "SUPPORTED_THEMES",
    "ORIGIN",
    "CACHE_PREFIX",
    "SEARCH_THRESHOLD",
    "RECENTS_LIMIT",
    "RECENTS_DISPLAY",
    "VERSION_QUERY_TIMEOUT",
    "UPDATE_FOUND_TIMEOUT",
    "UPDATE_INSTALL_TIMEOUT",
    "UPDATE_ACTIVATE_TIMEOUT",
    "AUTO_CHECK_DELAY",
    "NETWORK_TIMEOUT",
    "STORAGE_PATH",
    "API_PORT",
    "DEFAULT_THEME",
]
