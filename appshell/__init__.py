"""App shell: fuzzy app search, offline cache and versioned self-update."""

__version__ = "2.0.0"
