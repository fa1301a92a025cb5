"""Custom exception classes for the app shell."""

from typing import List, Optional


class AppShellError(Exception):
    """Base exception for app shell errors."""
    pass


class StorageError(AppShellError):
    """Exception raised for durable storage errors."""
    pass


class StorageScopeError(StorageError):
    """Exception raised when a component touches a key outside its namespace."""
    pass


class RegistryError(AppShellError):
    """Exception raised when the app registry cannot be loaded."""
    pass


class NetworkError(AppShellError):
    """Exception raised when a network fetch fails at the transport level."""
    pass


class CacheError(AppShellError):
    """Exception raised for cache process errors."""
    pass


class CacheInstallError(CacheError):
    """Exception raised when one or more shell resources fail to install."""
    
    def __init__(self, message: str, failed_urls: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_urls = list(failed_urls or [])


class CacheMissError(CacheError):
    """Exception raised when a request has no cached entry, no network and no fallback."""
    pass


class InvalidWorkerStateError(CacheError):
    """Exception raised for an illegal cache process lifecycle transition."""
    pass


class UpdateError(AppShellError):
    """Exception raised when the update protocol cannot complete."""
    pass


class UpdateTimeoutError(UpdateError):
    """Exception raised when a step of the update protocol times out."""
    pass


class BackupError(AppShellError):
    """Exception raised for export/import errors."""
    pass


class InvalidBackupError(BackupError):
    """Exception raised when a backup document fails validation."""
    pass
