"""Batch helpers for reading, writing, deleting and copying many files.

Every operation verifies its own permission, so one denied file fails only
its own slot.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from promptier.interfaces.handle import AccessMode, BaseDirectoryHandle, BaseFileHandle
from promptier.strategies.filesystem.batch import BatchOptions, BatchResult, execute_batch
from promptier.strategies.filesystem.operations import (
    delete_file,
    ensure_access,
    read_file,
    write_file,
)
from promptier.strategies.filesystem.permissions import PermissionGate


@dataclass(frozen=True)
class FileWrite:
    """Content to write to one file."""

    handle: BaseFileHandle
    content: str | bytes


@dataclass(frozen=True)
class FileCopy:
    """Copy ``source`` into ``target_directory`` as ``target_name``.

    ``target_name`` defaults to the source name.
    """

    source: BaseFileHandle
    target_directory: BaseDirectoryHandle
    target_name: str | None = None


async def read_files(
    handles: Sequence[BaseFileHandle],
    options: BatchOptions | None = None,
    encoding: str = "utf-8",
    gate: PermissionGate | None = None,
) -> BatchResult:
    """Read many files; results hold the decoded texts."""
    return await execute_batch(
        [lambda h=handle: read_file(h, encoding, gate=gate) for handle in handles],
        options,
    )


async def write_files(
    writes: Sequence[FileWrite],
    options: BatchOptions | None = None,
    encoding: str = "utf-8",
    gate: PermissionGate | None = None,
) -> BatchResult:
    return await execute_batch(
        [lambda w=write: write_file(w.handle, w.content, encoding, gate) for write in writes],
        options,
    )


async def delete_files(
    directory: BaseDirectoryHandle,
    names: Sequence[str],
    options: BatchOptions | None = None,
    gate: PermissionGate | None = None,
) -> BatchResult:
    return await execute_batch(
        [lambda n=name: delete_file(directory, n, gate) for name in names],
        options,
    )


async def copy_files(
    copies: Sequence[FileCopy],
    options: BatchOptions | None = None,
    gate: PermissionGate | None = None,
) -> BatchResult:
    """Copy files byte for byte; results hold the target handles."""

    async def copy_one(copy: FileCopy) -> BaseFileHandle:
        await ensure_access(copy.source, AccessMode.READ, gate)
        await ensure_access(copy.target_directory, AccessMode.READWRITE, gate)
        data = await copy.source.read()
        target = await copy.target_directory.get_file_handle(
            copy.target_name or copy.source.name, create=True
        )
        await write_file(target, data, gate=gate)
        return target

    return await execute_batch([lambda c=copy: copy_one(c) for copy in copies], options)
