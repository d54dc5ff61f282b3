"""Local-disk implementation of the handle capability set.

Handles wrap ``pathlib.Path`` objects and keep their own access grants. A
grant on a directory covers everything below it, and read-write implies
read. Prompting for consent is only allowed while a user gesture is active,
modelled by the ``user_gesture()`` context manager.
"""

import asyncio
import logging
import mimetypes
import os
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

from promptier.interfaces.handle import (
    AccessMode,
    BaseAccessHandle,
    BaseDirectoryHandle,
    BaseFileHandle,
    BaseHandle,
    FileMetadata,
    PermissionState,
)

logger = logging.getLogger(__name__)

ConsentCallback = Callable[[BaseHandle, AccessMode], bool]

_user_gesture: ContextVar[bool] = ContextVar("promptier_user_gesture", default=False)


@contextmanager
def user_gesture() -> Iterator[None]:
    """Mark the enclosed code as running in response to user activation.

    Example:
        ```python
        with user_gesture():
            await gate.request(handle, AccessMode.READ)
        ```
    """
    token = _user_gesture.set(True)
    try:
        yield
    finally:
        _user_gesture.reset(token)


def is_user_gesture_active() -> bool:
    return _user_gesture.get()


def _always_consent(handle: BaseHandle, mode: AccessMode) -> bool:
    return True


class _LocalHandleMixin:
    """Grant bookkeeping shared by local file and directory handles."""

    _path: Path
    _parent: "LocalDirectoryHandle | None"
    _consent: ConsentCallback
    _grants: dict[AccessMode, PermissionState]

    def _init_grants(
        self,
        parent: "LocalDirectoryHandle | None",
        consent: ConsentCallback | None,
    ) -> None:
        self._parent = parent
        self._consent = consent or (parent._consent if parent is not None else _always_consent)
        self._grants = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def identity(self) -> str:
        return str(self._path.absolute())

    def grant(self, mode: AccessMode = AccessMode.READ) -> None:
        """Record a grant without prompting, as a file picker would."""
        self._grants[mode] = PermissionState.GRANTED
        if mode is AccessMode.READWRITE:
            self._grants[AccessMode.READ] = PermissionState.GRANTED

    def revoke(self) -> None:
        self._grants.clear()

    def _state(self, mode: AccessMode) -> PermissionState:
        state = self._grants.get(mode)
        if state is None and mode is AccessMode.READ:
            state = self._grants.get(AccessMode.READWRITE)
        if state is PermissionState.GRANTED:
            return state
        if self._parent is not None and self._parent._state(mode) is PermissionState.GRANTED:
            return PermissionState.GRANTED
        return state or PermissionState.PROMPT

    def _require(self, mode: AccessMode) -> None:
        if self._state(mode) is not PermissionState.GRANTED:
            raise PermissionError(f"{mode.value} access to {self._path} has not been granted")

    async def query_permission(self, mode: AccessMode) -> PermissionState:
        return self._state(mode)

    async def request_permission(self, mode: AccessMode) -> PermissionState:
        state = self._state(mode)
        if state is PermissionState.GRANTED:
            return state

        if not is_user_gesture_active():
            raise PermissionError("Permission requests require user activation")

        if self._consent(self, mode):  # type: ignore[arg-type]
            self.grant(mode)
            logger.debug(f"Granted {mode.value} access to {self._path}")
        else:
            self._grants[mode] = PermissionState.DENIED
            logger.debug(f"Denied {mode.value} access to {self._path}")
        return self._grants[mode]


class LocalAccessHandle(BaseAccessHandle):
    """Synchronous positional reads over an open file."""

    def __init__(self, path: Path) -> None:
        self._file = path.open("rb")

    def get_size(self) -> int:
        return os.fstat(self._file.fileno()).st_size

    def read(self, size: int, offset: int = 0) -> bytes:
        self._file.seek(offset)
        return self._file.read(size)

    def close(self) -> None:
        self._file.close()


class LocalFileHandle(_LocalHandleMixin, BaseFileHandle):
    """Handle to a file on the local disk."""

    def __init__(
        self,
        path: Path | str,
        parent: "LocalDirectoryHandle | None" = None,
        consent: ConsentCallback | None = None,
    ) -> None:
        self._path = Path(path)
        self._init_grants(parent, consent)

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self._path)!r})"

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._path.is_file)

    async def read(self) -> bytes:
        self._require(AccessMode.READ)
        return await asyncio.to_thread(self._path.read_bytes)

    async def get_metadata(self) -> FileMetadata:
        self._require(AccessMode.READ)
        stat = await asyncio.to_thread(self._path.stat)
        mime_type, _ = mimetypes.guess_type(self._path.name)
        return FileMetadata(
            name=self._path.name,
            size=stat.st_size,
            last_modified=stat.st_mtime,
            mime_type=mime_type or "",
        )

    async def write(self, data: bytes) -> None:
        self._require(AccessMode.READWRITE)
        await asyncio.to_thread(self._path.write_bytes, data)

    async def create_access_handle(self) -> LocalAccessHandle:
        self._require(AccessMode.READ)
        return await asyncio.to_thread(LocalAccessHandle, self._path)


class LocalDirectoryHandle(_LocalHandleMixin, BaseDirectoryHandle):
    """Handle to a directory on the local disk."""

    def __init__(
        self,
        path: Path | str,
        parent: "LocalDirectoryHandle | None" = None,
        consent: ConsentCallback | None = None,
    ) -> None:
        self._path = Path(path)
        self._init_grants(parent, consent)

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self._path)!r})"

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._path.is_dir)

    async def entries(self) -> AsyncIterator[BaseHandle]:
        self._require(AccessMode.READ)
        children = await asyncio.to_thread(
            lambda: sorted((child, child.is_dir()) for child in self._path.iterdir())
        )
        for child, is_dir in children:
            if is_dir:
                yield LocalDirectoryHandle(child, parent=self)
            else:
                yield LocalFileHandle(child, parent=self)

    async def get_file_handle(self, name: str, create: bool = False) -> LocalFileHandle:
        path = self._child_path(name)
        if await asyncio.to_thread(path.is_dir):
            raise IsADirectoryError(f"{path} is a directory")
        if not await asyncio.to_thread(path.exists):
            if not create:
                raise FileNotFoundError(f"{path} does not exist")
            self._require(AccessMode.READWRITE)
            await asyncio.to_thread(path.touch)
        return LocalFileHandle(path, parent=self)

    async def get_directory_handle(self, name: str, create: bool = False) -> "LocalDirectoryHandle":
        path = self._child_path(name)
        if await asyncio.to_thread(path.is_file):
            raise NotADirectoryError(f"{path} is not a directory")
        if not await asyncio.to_thread(path.exists):
            if not create:
                raise FileNotFoundError(f"{path} does not exist")
            self._require(AccessMode.READWRITE)
            await asyncio.to_thread(path.mkdir)
        return LocalDirectoryHandle(path, parent=self)

    async def remove_entry(self, name: str) -> None:
        path = self._child_path(name)
        self._require(AccessMode.READWRITE)
        if await asyncio.to_thread(path.is_dir):
            await asyncio.to_thread(path.rmdir)
        else:
            await asyncio.to_thread(path.unlink)

    def _child_path(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or os.sep in name:
            raise ValueError(f"Invalid entry name: {name!r}")
        return self._path / name
