"""In-memory handle doubles and a manual clock."""

import asyncio
from collections.abc import AsyncIterator

from promptier.interfaces.handle import (
    AccessMode,
    BaseDirectoryHandle,
    BaseFileHandle,
    BaseHandle,
    FileMetadata,
    PermissionState,
)


class FakeFileHandle(BaseFileHandle):
    """In-memory file handle with scriptable permissions and failures."""

    def __init__(
        self,
        name: str,
        content: bytes | str = b"",
        permission: PermissionState = PermissionState.GRANTED,
        request_result: PermissionState = PermissionState.GRANTED,
        exists: bool = True,
        read_error: Exception | None = None,
        read_delay: float = 0.0,
    ) -> None:
        self._name = name
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.permission = permission
        self.request_result = request_result
        self.present = exists
        self.read_error = read_error
        self.read_delay = read_delay
        self.read_calls = 0
        self.query_calls = 0
        self.request_calls = 0
        self.written: list[bytes] = []

    @property
    def name(self) -> str:
        return self._name

    async def query_permission(self, mode: AccessMode) -> PermissionState:
        self.query_calls += 1
        return self.permission

    async def request_permission(self, mode: AccessMode) -> PermissionState:
        self.request_calls += 1
        self.permission = self.request_result
        return self.request_result

    async def exists(self) -> bool:
        return self.present

    async def read(self) -> bytes:
        self.read_calls += 1
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        if self.read_error is not None:
            raise self.read_error
        if self.permission is not PermissionState.GRANTED:
            raise PermissionError(f"no read access to {self._name}")
        return self.content

    async def get_metadata(self) -> FileMetadata:
        return FileMetadata(name=self._name, size=len(self.content), last_modified=0.0)

    async def write(self, data: bytes) -> None:
        self.written.append(data)
        self.content = data


class UnqueryableFileHandle(FakeFileHandle):
    """A handle whose platform cannot check permission without prompting."""

    async def query_permission(self, mode: AccessMode) -> PermissionState:
        raise NotImplementedError("query_permission")


class BrokenStatFileHandle(FakeFileHandle):
    """A handle whose existence check fails with an OS error."""

    async def exists(self) -> bool:
        raise OSError("stat failed")


class FakeDirectoryHandle(BaseDirectoryHandle):
    """In-memory directory handle."""

    def __init__(
        self,
        name: str,
        children: list[BaseHandle] | None = None,
        permission: PermissionState = PermissionState.GRANTED,
    ) -> None:
        self._name = name
        self.children: dict[str, BaseHandle] = {child.name: child for child in children or []}
        self.permission = permission

    @property
    def name(self) -> str:
        return self._name

    async def query_permission(self, mode: AccessMode) -> PermissionState:
        return self.permission

    async def request_permission(self, mode: AccessMode) -> PermissionState:
        return self.permission

    async def exists(self) -> bool:
        return True

    async def entries(self) -> AsyncIterator[BaseHandle]:
        for child in list(self.children.values()):
            yield child

    async def get_file_handle(self, name: str, create: bool = False) -> BaseFileHandle:
        child = self.children.get(name)
        if child is None:
            if not create:
                raise FileNotFoundError(name)
            child = FakeFileHandle(name)
            self.children[name] = child
        if not isinstance(child, BaseFileHandle):
            raise IsADirectoryError(name)
        return child

    async def get_directory_handle(self, name: str, create: bool = False) -> BaseDirectoryHandle:
        child = self.children.get(name)
        if child is None:
            if not create:
                raise FileNotFoundError(name)
            child = FakeDirectoryHandle(name)
            self.children[name] = child
        if not isinstance(child, BaseDirectoryHandle):
            raise NotADirectoryError(name)
        return child

    async def remove_entry(self, name: str) -> None:
        if name not in self.children:
            raise FileNotFoundError(name)
        del self.children[name]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

