"""Abstract base classes for file and directory handles.

A handle is an opaque reference to a file or directory granted by the host
platform. The core only relies on the capability set defined here, so any
platform (local disk, a sandboxed virtual filesystem, a test double) can be
plugged in by implementing these classes.
"""

import enum
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


class HandleKind(str, enum.Enum):
    """Kind of filesystem object a handle points at."""

    FILE = "file"
    DIRECTORY = "directory"


class AccessMode(str, enum.Enum):
    """Access level requested from the platform."""

    READ = "read"
    READWRITE = "readwrite"


class PermissionState(str, enum.Enum):
    """Current permission state of a handle for a given mode."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


@dataclass(frozen=True)
class FileMetadata:
    """Metadata for a file behind a handle.

    Attributes:
        name: File name without directories.
        size: Size in bytes.
        last_modified: Modification time (seconds since the epoch).
        mime_type: Best-effort MIME type, empty when unknown.
    """

    name: str
    size: int
    last_modified: float
    mime_type: str = ""


class BaseHandle(ABC):
    """Capability set shared by file and directory handles.

    Platforms that cannot answer a permission query without prompting, or
    cannot prompt at all, leave the corresponding method unimplemented; the
    permission gate reports that as a capability error.
    """

    @property
    @abstractmethod
    def kind(self) -> HandleKind:
        """Return whether this is a file or a directory handle."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the file or directory name."""

    @property
    def identity(self) -> str:
        """Return a stable identifier used for cache keys.

        Defaults to the name; implementations that know a full path should
        return it so distinct objects with the same name do not collide.
        """
        return self.name

    async def query_permission(self, mode: AccessMode) -> PermissionState:
        """Return the permission state for ``mode`` without prompting.

        Raises:
            NotImplementedError: If the platform cannot query silently.
        """
        raise NotImplementedError("query_permission is not supported by this handle")

    async def request_permission(self, mode: AccessMode) -> PermissionState:
        """Ask the user for ``mode`` access, possibly showing a prompt.

        Raises:
            NotImplementedError: If the platform cannot prompt.
            PermissionError: If the platform refuses to prompt (for
                example, no user gesture is active).
        """
        raise NotImplementedError("request_permission is not supported by this handle")

    @abstractmethod
    async def exists(self) -> bool:
        """Return whether the underlying object still exists.

        Must not prompt and must not require a permission grant.
        """


class BaseAccessHandle(ABC):
    """Low-level synchronous access to a file's bytes.

    Must be closed after use; callers release it in a ``finally`` block.
    """

    @abstractmethod
    def get_size(self) -> int:
        """Return the file size in bytes."""

    @abstractmethod
    def read(self, size: int, offset: int = 0) -> bytes:
        """Read up to ``size`` bytes starting at ``offset``."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource."""


class BaseFileHandle(BaseHandle):
    """Handle to a single file."""

    @property
    def kind(self) -> HandleKind:
        return HandleKind.FILE

    @abstractmethod
    async def read(self) -> bytes:
        """Read the whole file.

        Raises:
            PermissionError: If read access has not been granted.
            FileNotFoundError: If the file no longer exists.
            OSError: On other I/O failures.
        """

    @abstractmethod
    async def get_metadata(self) -> FileMetadata:
        """Return size and timestamps without reading the content."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Replace the file content.

        Raises:
            PermissionError: If read-write access has not been granted.
            OSError: On I/O failures.
        """

    async def create_access_handle(self) -> BaseAccessHandle:
        """Open a low-level access handle.

        Raises:
            NotImplementedError: If the platform has no such primitive.
        """
        raise NotImplementedError("create_access_handle is not supported by this handle")


class BaseDirectoryHandle(BaseHandle):
    """Handle to a directory."""

    @property
    def kind(self) -> HandleKind:
        return HandleKind.DIRECTORY

    @abstractmethod
    def entries(self) -> AsyncIterator[BaseHandle]:
        """Iterate over the direct children of the directory.

        Raises:
            PermissionError: If read access has not been granted.
        """

    @abstractmethod
    async def get_file_handle(self, name: str, create: bool = False) -> BaseFileHandle:
        """Return a child file handle.

        Raises:
            FileNotFoundError: If the file does not exist and ``create`` is False.
        """

    @abstractmethod
    async def get_directory_handle(self, name: str, create: bool = False) -> "BaseDirectoryHandle":
        """Return a child directory handle.

        Raises:
            FileNotFoundError: If the directory does not exist and ``create`` is False.
        """

    @abstractmethod
    async def remove_entry(self, name: str) -> None:
        """Delete a child file.

        Raises:
            FileNotFoundError: If no such child exists.
            PermissionError: If read-write access has not been granted.
        """


class BaseHandleProvider(ABC):
    """Re-acquires live handles for references whose handle was lost.

    Live handles cannot be persisted, so after a restart the registry only
    knows metadata. A provider turns the stored hints back into handles.
    """

    @abstractmethod
    async def reacquire(
        self,
        kind: HandleKind,
        path: str | None,
        name: str,
    ) -> BaseHandle | None:
        """Produce a fresh handle for a stale reference.

        Args:
            kind: Expected handle kind.
            path: Path hint stored with the reference, if any.
            name: Display name of the entry.

        Returns:
            A handle, or None when re-acquisition is not possible.
        """
