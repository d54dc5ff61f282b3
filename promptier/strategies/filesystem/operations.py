"""High-level filesystem operations over handles.

Each operation verifies the access it needs through the permission gate and
normalizes failures into ``FileSystemError``.
"""

import fnmatch
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from promptier.core.errors import ErrorKind, FileSystemError, to_filesystem_error
from promptier.interfaces.handle import (
    AccessMode,
    BaseDirectoryHandle,
    BaseFileHandle,
    BaseHandle,
    FileMetadata,
    HandleKind,
)
from promptier.strategies.filesystem.batch import BatchProgress
from promptier.strategies.filesystem.permissions import PermissionGate

logger = logging.getLogger(__name__)

_default_gate = PermissionGate()


@dataclass(frozen=True)
class FileContent:
    """Decoded file text together with its metadata."""

    content: str
    metadata: FileMetadata


@dataclass(frozen=True)
class ListingEntry:
    """One entry of a directory listing.

    Attributes:
        name: Entry name.
        kind: File or directory.
        path: Path relative to the listed directory, ``/``-separated.
        depth: 0 for direct children.
        handle: Handle to the entry.
    """

    name: str
    kind: HandleKind
    path: str
    depth: int
    handle: BaseHandle = field(repr=False, compare=False)


@dataclass(frozen=True)
class ListOptions:
    """Options for recursive listings.

    Attributes:
        max_depth: Deepest level to descend into; 0 lists direct children
            only, None is unbounded.
        include: Glob patterns an entry name must match (if given).
        exclude: Glob patterns that drop an entry and its subtree. Exclusion
            wins over inclusion.
        on_progress: Called after every visited entry.
    """

    max_depth: int | None = None
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    on_progress: Callable[[BatchProgress], None] | None = None


async def ensure_access(
    handle: BaseHandle,
    mode: AccessMode = AccessMode.READ,
    gate: PermissionGate | None = None,
    auto_request: bool = True,
) -> None:
    """Raise PERMISSION_DENIED unless ``mode`` access is available."""
    gate = gate or _default_gate
    if not await gate.verify(handle, mode, auto_request=auto_request):
        raise FileSystemError(
            ErrorKind.PERMISSION_DENIED,
            f"{mode.value} access to {handle.name} was not granted",
        )


def _wrap(error: Exception, kind: ErrorKind, message: str) -> FileSystemError:
    normalized = to_filesystem_error(error)
    if normalized.kind in (ErrorKind.FILE_READ, ErrorKind.UNKNOWN):
        return FileSystemError(kind, message, error)
    return normalized


async def read_file(
    handle: BaseFileHandle,
    encoding: str = "utf-8",
    max_size: int | None = None,
    gate: PermissionGate | None = None,
) -> str:
    """Read and decode a file.

    Args:
        handle: File to read.
        encoding: Text encoding.
        max_size: Largest allowed size in bytes; None disables the check.
        gate: Permission gate; the module default when None.

    Returns:
        The decoded text.

    Raises:
        FileSystemError: PERMISSION_DENIED, FILE_NOT_FOUND, FILE_TOO_LARGE or
            FILE_READ.
    """
    return (await read_file_content(handle, encoding, max_size, gate)).content


async def read_file_content(
    handle: BaseFileHandle,
    encoding: str = "utf-8",
    max_size: int | None = None,
    gate: PermissionGate | None = None,
) -> FileContent:
    """Read and decode a file, returning its metadata as well."""
    await ensure_access(handle, AccessMode.READ, gate)

    try:
        metadata = await handle.get_metadata()
        if max_size is not None and metadata.size > max_size:
            raise FileSystemError(
                ErrorKind.FILE_TOO_LARGE,
                f"{handle.name} is {metadata.size} bytes, limit is {max_size}",
            )
        data = await handle.read()
        return FileContent(content=data.decode(encoding), metadata=metadata)
    except FileSystemError:
        raise
    except UnicodeDecodeError as e:
        raise FileSystemError(
            ErrorKind.FILE_READ, f"{handle.name} is not valid {encoding} text", e
        ) from e
    except Exception as e:
        raise _wrap(e, ErrorKind.FILE_READ, f"Failed to read {handle.name}") from e


async def write_file(
    handle: BaseFileHandle,
    content: str | bytes,
    encoding: str = "utf-8",
    gate: PermissionGate | None = None,
) -> None:
    """Replace a file's content, asking for read-write access if needed.

    Raises:
        FileSystemError: PERMISSION_DENIED or FILE_WRITE.
    """
    await ensure_access(handle, AccessMode.READWRITE, gate)

    data = content.encode(encoding) if isinstance(content, str) else content
    try:
        await handle.write(data)
    except FileSystemError:
        raise
    except Exception as e:
        raise _wrap(e, ErrorKind.FILE_WRITE, f"Failed to write {handle.name}") from e

    logger.debug(f"Wrote {len(data)} bytes to {handle.name}")


async def delete_file(
    directory: BaseDirectoryHandle,
    name: str,
    gate: PermissionGate | None = None,
) -> None:
    """Delete ``name`` from ``directory``.

    Raises:
        FileSystemError: PERMISSION_DENIED, FILE_NOT_FOUND or FILE_WRITE.
    """
    await ensure_access(directory, AccessMode.READWRITE, gate)

    try:
        await directory.remove_entry(name)
    except FileSystemError:
        raise
    except Exception as e:
        raise _wrap(e, ErrorKind.FILE_WRITE, f"Failed to delete {name}") from e

    logger.debug(f"Deleted {name} from {directory.name}")


async def list_directory(
    directory: BaseDirectoryHandle,
    gate: PermissionGate | None = None,
) -> list[ListingEntry]:
    """List the direct children of a directory, sorted by name.

    Raises:
        FileSystemError: PERMISSION_DENIED or DIRECTORY.
    """
    await ensure_access(directory, AccessMode.READ, gate)

    try:
        children = [child async for child in directory.entries()]
    except FileSystemError:
        raise
    except Exception as e:
        raise _wrap(e, ErrorKind.DIRECTORY, f"Failed to list {directory.name}") from e

    return sorted(
        (
            ListingEntry(name=child.name, kind=child.kind, path=child.name, depth=0, handle=child)
            for child in children
        ),
        key=lambda entry: entry.name,
    )


def _matches(name: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def should_include(name: str, options: ListOptions) -> bool:
    if options.exclude and _matches(name, options.exclude):
        return False
    if options.include:
        return _matches(name, options.include)
    return True


async def list_recursive(
    directory: BaseDirectoryHandle,
    options: ListOptions | None = None,
    gate: PermissionGate | None = None,
) -> list[ListingEntry]:
    """List a directory tree depth-first.

    Directories are always descended into when not excluded, even if an
    include filter hides the directory entry itself.

    Args:
        directory: Root of the listing.
        options: Depth, filters and progress callback.
        gate: Permission gate; the module default when None.

    Returns:
        Entries in depth-first, name-sorted order with relative paths.

    Raises:
        FileSystemError: PERMISSION_DENIED or DIRECTORY.
    """
    options = options or ListOptions()
    results: list[ListingEntry] = []
    progress = {"completed": 0, "total": 0}

    async def walk(current: BaseDirectoryHandle, prefix: str, depth: int) -> None:
        children = await list_directory(current, gate)
        progress["total"] += len(children)

        for child in children:
            progress["completed"] += 1
            if options.on_progress is not None:
                options.on_progress(BatchProgress.of(progress["completed"], progress["total"]))

            if options.exclude and _matches(child.name, options.exclude):
                continue

            path = f"{prefix}{child.name}"
            if should_include(child.name, options):
                results.append(
                    ListingEntry(
                        name=child.name,
                        kind=child.kind,
                        path=path,
                        depth=depth,
                        handle=child.handle,
                    )
                )

            if child.kind is HandleKind.DIRECTORY and (
                options.max_depth is None or depth < options.max_depth
            ):
                await walk(child.handle, f"{path}/", depth + 1)  # type: ignore[arg-type]

    try:
        await walk(directory, "", 0)
    except FileSystemError:
        raise
    except Exception as e:
        logger.error(f"Error during recursive listing of {directory.name}: {e}", exc_info=True)
        raise FileSystemError(
            ErrorKind.DIRECTORY, f"Failed to recursively list {directory.name}", e
        ) from e

    return results


async def read_file_with_access_handle(
    handle: BaseFileHandle,
    gate: PermissionGate | None = None,
) -> bytes:
    """Read a file through a low-level access handle that is always released.

    Raises:
        FileSystemError: CAPABILITY if the platform has no access handles,
            otherwise the mapped read failure.
    """
    await ensure_access(handle, AccessMode.READ, gate)

    try:
        access = await handle.create_access_handle()
    except NotImplementedError as e:
        raise FileSystemError(
            ErrorKind.CAPABILITY,
            f"{handle.name} does not support access handles",
            e,
            capability="create_access_handle",
        ) from e
    except Exception as e:
        raise _wrap(e, ErrorKind.FILE_READ, f"Failed to open {handle.name}") from e

    try:
        return access.read(access.get_size(), 0)
    except FileSystemError:
        raise
    except Exception as e:
        raise _wrap(e, ErrorKind.FILE_READ, f"Failed to read {handle.name}") from e
    finally:
        access.close()


async def file_exists(directory: BaseDirectoryHandle, name: str) -> bool:
    try:
        await directory.get_file_handle(name)
        return True
    except (FileNotFoundError, IsADirectoryError):
        return False


async def directory_exists(directory: BaseDirectoryHandle, name: str) -> bool:
    try:
        await directory.get_directory_handle(name)
        return True
    except (FileNotFoundError, NotADirectoryError):
        return False
