"""Abstract base classes for handles, stores and output sinks."""

from promptier.interfaces.clipboard import BaseClipboard
from promptier.interfaces.handle import (
    AccessMode,
    BaseAccessHandle,
    BaseDirectoryHandle,
    BaseFileHandle,
    BaseHandle,
    BaseHandleProvider,
    FileMetadata,
    HandleKind,
    PermissionState,
)
from promptier.interfaces.notifier import BaseNotifier, ResolutionEvent, ResolutionStatus
from promptier.interfaces.store import (
    BaseHandleRecordStore,
    BaseTemplateStore,
    BaseVariableStore,
    DirectoryEntry,
    FileEntry,
    GlobalVariable,
    HandleMetadata,
    HandleRef,
    TemplateRecord,
    TextEntry,
    VariableEntry,
)

__all__ = [
    "AccessMode",
    "BaseAccessHandle",
    "BaseClipboard",
    "BaseDirectoryHandle",
    "BaseFileHandle",
    "BaseHandle",
    "BaseHandleProvider",
    "BaseHandleRecordStore",
    "BaseNotifier",
    "BaseTemplateStore",
    "BaseVariableStore",
    "DirectoryEntry",
    "FileEntry",
    "FileMetadata",
    "GlobalVariable",
    "HandleKind",
    "HandleMetadata",
    "HandleRef",
    "PermissionState",
    "ResolutionEvent",
    "ResolutionStatus",
    "TemplateRecord",
    "TextEntry",
    "VariableEntry",
]
