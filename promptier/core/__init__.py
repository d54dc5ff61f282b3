"""Core configuration, errors and caching.

The component factory lives in ``promptier.core.factory``; it imports the
strategy packages, which in turn depend on this package.
"""

from promptier.core.cache import CacheStats, ExpiringCache
from promptier.core.config import Settings, get_settings
from promptier.core.errors import ErrorKind, FileSystemError, to_filesystem_error

__all__ = [
    "CacheStats",
    "ExpiringCache",
    "Settings",
    "get_settings",
    "ErrorKind",
    "FileSystemError",
    "to_filesystem_error",
]
