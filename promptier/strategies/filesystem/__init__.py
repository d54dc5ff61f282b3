"""Filesystem strategies.

Handles, permissions, caching, batching and the file content resolver.
"""

from promptier.strategies.filesystem.batch import (
    BatchOptions,
    BatchProgress,
    BatchResult,
    FailedOperation,
    execute_batch,
)
from promptier.strategies.filesystem.cache import HandleCache
from promptier.strategies.filesystem.local import (
    LocalDirectoryHandle,
    LocalFileHandle,
    user_gesture,
)
from promptier.strategies.filesystem.permissions import PermissionGate
from promptier.strategies.filesystem.providers import NullHandleProvider, PathHandleProvider
from promptier.strategies.filesystem.record_stores import (
    InMemoryHandleRecordStore,
    SqlHandleRecordStore,
)
from promptier.strategies.filesystem.registry import FileHandleRegistry
from promptier.strategies.filesystem.resolver import (
    EntryDiagnosis,
    FileContentResolver,
    ResolutionResult,
    ResolveOptions,
)

__all__ = [
    "BatchOptions",
    "BatchProgress",
    "BatchResult",
    "EntryDiagnosis",
    "FailedOperation",
    "FileContentResolver",
    "FileHandleRegistry",
    "HandleCache",
    "InMemoryHandleRecordStore",
    "LocalDirectoryHandle",
    "LocalFileHandle",
    "NullHandleProvider",
    "PathHandleProvider",
    "PermissionGate",
    "ResolutionResult",
    "ResolveOptions",
    "SqlHandleRecordStore",
    "execute_batch",
    "user_gesture",
]
