"""Concrete strategy implementations."""

from promptier.strategies.clipboard import (
    InMemoryClipboard,
    SystemClipboard,
)
from promptier.strategies.filesystem import (
    FileContentResolver,
    FileHandleRegistry,
    HandleCache,
    InMemoryHandleRecordStore,
    NullHandleProvider,
    PathHandleProvider,
    PermissionGate,
    SqlHandleRecordStore,
)
from promptier.strategies.notifiers import (
    LoggingNotifier,
    RecordingNotifier,
)
from promptier.strategies.stores import (
    InMemoryTemplateStore,
    InMemoryVariableStore,
)
from promptier.strategies.template_engine import (
    TemplateParser,
    VariableResolutionEngine,
)

__all__ = [
    "InMemoryClipboard",
    "SystemClipboard",
    "FileContentResolver",
    "FileHandleRegistry",
    "HandleCache",
    "InMemoryHandleRecordStore",
    "NullHandleProvider",
    "PathHandleProvider",
    "PermissionGate",
    "SqlHandleRecordStore",
    "LoggingNotifier",
    "RecordingNotifier",
    "InMemoryTemplateStore",
    "InMemoryVariableStore",
    "TemplateParser",
    "VariableResolutionEngine",
]
