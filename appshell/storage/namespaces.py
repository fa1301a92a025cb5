"""Namespace utilities for durable storage keys."""

# Every key the shell itself owns starts with this prefix
SHELL_PREFIX = "appshell-"


def build_key(*parts: str) -> str:
    """
    Build a shell-owned storage key from parts.
    
    Args:
        *parts: Key segments
    
    Returns:
        Dash-joined key carrying the shell prefix
    
    Examples:
        build_key("recents") -> "appshell-recents"
        build_key("auto", "update", "check") -> "appshell-auto-update-check"
    """
    return SHELL_PREFIX + "-".join(parts)


def is_shell_key(key: str) -> bool:
    """Return True if `key` belongs to the shell namespace."""
    return key.startswith(SHELL_PREFIX)


def key_matches(key: str, keys=(), prefixes=()) -> bool:
    """
    Check whether a key is visible through a set of exact keys and prefixes.
    
    Args:
        key: Storage key
        keys: Exact keys that are allowed
        prefixes: Key prefixes that are allowed
    
    Returns:
        True if the key is an allowed exact key or starts with an allowed prefix
    """
    if key in keys:
        return True
    return any(key.startswith(prefix) for prefix in prefixes)


RECENTS_KEY = build_key("recents")
THEME_KEY = build_key("theme")
AUTO_UPDATE_CHECK_KEY = build_key("auto", "update", "check")

SHELL_KEYS = (RECENTS_KEY, THEME_KEY, AUTO_UPDATE_CHECK_KEY)
