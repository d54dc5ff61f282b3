"""Turns file and directory variable entries into text.

Resolution looks each handle up in the registry, re-acquires stale ones,
asks the permission gate for read access on every distinct handle, and then
reads contents through the handle cache with bounded concurrency. Per-entry
failures are collected, never raised; ``diagnose`` explains them afterwards
without prompting.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from promptier.core.errors import ErrorKind, FileSystemError, to_filesystem_error
from promptier.interfaces.handle import (
    AccessMode,
    BaseDirectoryHandle,
    BaseHandle,
    BaseHandleProvider,
    HandleKind,
    PermissionState,
)
from promptier.interfaces.store import DirectoryEntry, FileEntry, TextEntry, VariableEntry
from promptier.strategies.filesystem.batch import BatchOptions, execute_batch
from promptier.strategies.filesystem.cache import HandleCache
from promptier.strategies.filesystem.operations import ListOptions, list_recursive, read_file
from promptier.strategies.filesystem.permissions import PermissionGate
from promptier.strategies.filesystem.registry import FileHandleRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 4
DEFAULT_MAX_FILE_SIZE = 800 * 1024

_TAG_UNSAFE = re.compile(r"[^\w.-]")


@dataclass(frozen=True)
class ResolveOptions:
    """Options for one resolution call.

    Attributes:
        use_cache: Read from and write to the handle cache.
        force_reacquire: Skip cache lookups but still store fresh results.
        auto_reacquire_handles: Re-acquire missing or stale handles through
            the handle provider.
    """

    use_cache: bool = True
    force_reacquire: bool = False
    auto_reacquire_handles: bool = True


@dataclass(frozen=True)
class EntryFailure:
    """Why one entry could not be resolved."""

    index: int
    name: str
    error: FileSystemError


@dataclass(frozen=True)
class ResolutionResult:
    """Resolved contents aligned with the input entries.

    ``contents[i]`` is None when entry ``i`` failed. The result is truthy
    exactly when every entry resolved.
    """

    contents: tuple[str | None, ...] = ()
    failures: tuple[EntryFailure, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.failures

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class EntryDiagnosis:
    """Read-only report on one entry's handle."""

    index: int
    name: str
    kind: str
    handle_id: str | None = None
    handle_found: bool = False
    exists: bool | None = None
    permission: PermissionState | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind == "text" or (
            self.handle_found and bool(self.exists) and self.permission is PermissionState.GRANTED
        )


def create_tag_from_filename(filename: str) -> str:
    """Turn a file path or name into a tag name safe for ``<tag>`` wrapping."""
    return _TAG_UNSAFE.sub("_", PurePath(filename).name)


def _entry_name(entry: VariableEntry) -> str:
    match entry:
        case TextEntry():
            return "text"
        case FileEntry() | DirectoryEntry():
            return entry.name or entry.value.path or entry.value.handle_id


class FileContentResolver:
    """Resolves variable entries into their text content.

    Example:
        ```python
        resolver = FileContentResolver(registry, PermissionGate(), HandleCache())
        result = await resolver.resolve_all(entries)
        if not result:
            report = await resolver.diagnose(entries)
        ```
    """

    def __init__(
        self,
        registry: FileHandleRegistry,
        gate: PermissionGate | None = None,
        cache: HandleCache | None = None,
        provider: BaseHandleProvider | None = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        encoding: str = "utf-8",
        wrap_in_tags: bool = False,
        listing_max_depth: int = 2,
    ) -> None:
        """Initialize the resolver.

        Args:
            registry: Registry holding the live handles.
            gate: Permission gate.
            cache: Handle cache; None disables caching entirely.
            provider: Re-acquires stale handles; None disables re-acquisition.
            max_concurrent: Reads in flight at once.
            max_file_size: Largest file, in bytes, that may be inlined.
            encoding: Text encoding of files.
            wrap_in_tags: Wrap file contents in ``<filename>`` tags.
            listing_max_depth: Recursion depth of directory listings.
        """
        self._registry = registry
        self._gate = gate or PermissionGate()
        self._cache = cache
        self._provider = provider
        self._max_concurrent = max_concurrent
        self._max_file_size = max_file_size
        self._encoding = encoding
        self._wrap_in_tags = wrap_in_tags
        self._listing_max_depth = listing_max_depth

    @property
    def registry(self) -> FileHandleRegistry:
        return self._registry

    async def resolve_all(
        self,
        entries: Sequence[VariableEntry],
        options: ResolveOptions | None = None,
    ) -> ResolutionResult:
        """Resolve every entry.

        Args:
            entries: Text, file and directory entries.
            options: Cache and re-acquisition options.

        Returns:
            Contents aligned with ``entries`` plus the per-entry failures. The
            result is truthy exactly when every entry resolved, so
            ``bool(result)`` is the overall success flag.
        """
        options = options or ResolveOptions()
        contents: list[str | None] = [None] * len(entries)
        failures: list[EntryFailure] = []
        acquired: dict[int, tuple[FileEntry | DirectoryEntry, BaseHandle]] = {}

        for index, entry in enumerate(entries):
            match entry:
                case TextEntry():
                    contents[index] = entry.value
                case FileEntry() | DirectoryEntry():
                    try:
                        acquired[index] = (entry, await self._acquire(entry, options))
                    except FileSystemError as e:
                        failures.append(EntryFailure(index, _entry_name(entry), e))

        denied = await self._request_permissions(
            {entry.value.handle_id: handle for entry, handle in acquired.values()}
        )

        pending: list[int] = []
        for index, (entry, _) in acquired.items():
            if entry.value.handle_id in denied:
                failures.append(EntryFailure(index, _entry_name(entry), denied[entry.value.handle_id]))
            else:
                pending.append(index)

        if pending:
            batch = await execute_batch(
                [
                    lambda i=index: self._read_entry(*acquired[i], options)
                    for index in pending
                ],
                BatchOptions(continue_on_error=True, max_concurrent=self._max_concurrent),
            )
            for position, index in enumerate(pending):
                contents[index] = batch.results[position]
            for failed in batch.failed_operations:
                index = pending[failed.index]
                failures.append(EntryFailure(index, _entry_name(acquired[index][0]), failed.error))

        failures.sort(key=lambda failure: failure.index)
        for failure in failures:
            logger.warning(
                f"Could not resolve {failure.name}: {failure.error.kind.value}: {failure.error.message}"
            )

        return ResolutionResult(contents=tuple(contents), failures=tuple(failures))

    async def ensure_file_permissions(
        self,
        entries: Sequence[VariableEntry],
        options: ResolveOptions | None = None,
    ) -> bool:
        """Request read access for every distinct handle in ``entries``.

        Every handle is attempted even after a denial, so a single call
        surfaces all missing grants.

        Returns:
            True only if every handle is available and readable.
        """
        options = options or ResolveOptions()
        handles: dict[str, BaseHandle] = {}
        all_available = True

        for entry in entries:
            match entry:
                case TextEntry():
                    continue
                case FileEntry() | DirectoryEntry():
                    if entry.value.handle_id in handles:
                        continue
                    try:
                        handles[entry.value.handle_id] = await self._acquire(entry, options)
                    except FileSystemError:
                        all_available = False

        denied = await self._request_permissions(handles)
        return all_available and not denied

    async def diagnose(self, entries: Sequence[VariableEntry]) -> list[EntryDiagnosis]:
        """Inspect each entry's handle without prompting or mutating state."""
        report: list[EntryDiagnosis] = []

        for index, entry in enumerate(entries):
            match entry:
                case TextEntry():
                    report.append(EntryDiagnosis(index=index, name="text", kind="text", message="Text value"))
                case FileEntry() | DirectoryEntry():
                    report.append(await self._diagnose_entry(index, entry))

        return report

    async def _diagnose_entry(self, index: int, entry: FileEntry | DirectoryEntry) -> EntryDiagnosis:
        name = _entry_name(entry)
        handle_id = entry.value.handle_id
        handle = self._registry.get_handle(handle_id)

        if handle is None:
            if self._registry.get_record(handle_id) is not None:
                message = f"{name} was registered before a restart and must be selected again"
            else:
                message = f"{name} is not registered; select it again"
            return EntryDiagnosis(
                index=index, name=name, kind=entry.type, handle_id=handle_id, message=message
            )

        try:
            exists = await handle.exists()
        except Exception as e:
            logger.debug(f"Existence check failed for {name}: {e}")
            exists = False

        try:
            permission: PermissionState | None = await self._gate.query(handle, AccessMode.READ)
        except FileSystemError:
            permission = None

        if not exists:
            message = f"{name} no longer exists"
        elif permission is None:
            message = f"Read permission for {name} cannot be checked without a prompt"
        elif permission is not PermissionState.GRANTED:
            message = f"Read permission for {name} is {permission.value}"
        else:
            message = f"{name} is readable"

        return EntryDiagnosis(
            index=index,
            name=name,
            kind=entry.type,
            handle_id=handle_id,
            handle_found=True,
            exists=exists,
            permission=permission,
            message=message,
        )

    async def _acquire(self, entry: FileEntry | DirectoryEntry, options: ResolveOptions) -> BaseHandle:
        expected = HandleKind.FILE if isinstance(entry, FileEntry) else HandleKind.DIRECTORY
        ref = entry.value
        handle = self._registry.get_handle(ref.handle_id)

        try:
            stale = handle is None or not await handle.exists()
            if stale and options.auto_reacquire_handles and self._provider is not None:
                fresh = await self._provider.reacquire(expected, ref.path, entry.name)
                if fresh is not None:
                    await self._registry.register_handle(fresh, ref.handle_id)
                    handle, stale = fresh, False
        except FileSystemError:
            raise
        except Exception as e:
            raise to_filesystem_error(e) from e

        if handle is None:
            raise FileSystemError(
                ErrorKind.HANDLE_UNAVAILABLE,
                f"No handle registered for {_entry_name(entry)} ({ref.handle_id})",
            )
        if stale:
            raise FileSystemError(
                ErrorKind.FILE_NOT_FOUND,
                f"{_entry_name(entry)} no longer exists",
            )
        if handle.kind is not expected:
            raise FileSystemError(
                ErrorKind.DIRECTORY,
                f"{_entry_name(entry)} is a {handle.kind.value}, expected a {expected.value}",
            )
        return handle

    async def _request_permissions(self, handles: dict[str, BaseHandle]) -> dict[str, FileSystemError]:
        denied: dict[str, FileSystemError] = {}

        for handle_id, handle in handles.items():
            try:
                granted = await self._gate.verify(handle, AccessMode.READ)
            except FileSystemError as e:
                denied[handle_id] = e
                continue
            if not granted:
                denied[handle_id] = FileSystemError(
                    ErrorKind.PERMISSION_DENIED,
                    f"Read access to {handle.name} was not granted",
                )

        return denied

    async def _read_entry(
        self,
        entry: FileEntry | DirectoryEntry,
        handle: BaseHandle,
        options: ResolveOptions,
    ) -> str:
        match entry:
            case FileEntry():
                content = await self._cache_or_fetch(
                    handle,
                    {"handle_id": entry.value.handle_id, "encoding": self._encoding},
                    lambda: read_file(handle, self._encoding, self._max_file_size, self._gate),
                    options,
                )
                if self._wrap_in_tags:
                    tag = create_tag_from_filename(entry.value.path or entry.name or handle.name)
                    return f"<{tag}>\n{content}\n</{tag}>"
                return content
            case DirectoryEntry():
                return await self._cache_or_fetch(
                    handle,
                    {
                        "handle_id": entry.value.handle_id,
                        "listing": True,
                        "max_depth": self._listing_max_depth,
                    },
                    lambda: self._list_directory(handle),
                    options,
                )

    async def _list_directory(self, handle: BaseDirectoryHandle) -> str:
        listing = await list_recursive(
            handle, ListOptions(max_depth=self._listing_max_depth), self._gate
        )
        return "\n".join(
            f"{item.path}/" if item.kind is HandleKind.DIRECTORY else item.path for item in listing
        )

    async def _cache_or_fetch(
        self,
        handle: BaseHandle,
        key_options: dict[str, Any],
        fetch: Callable[[], Awaitable[str]],
        options: ResolveOptions,
    ) -> str:
        if self._cache is None or not options.use_cache:
            return await fetch()

        key = self._cache.generate_key(handle, key_options)
        if not options.force_reacquire:
            hit = self._cache.get(key)
            if hit is not None:
                return hit

        return self._cache.set(key, await fetch())

