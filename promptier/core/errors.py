"""Error kinds for the filesystem and resolution layers.

A single exception type carries a closed ``ErrorKind`` plus the lower-level
exception that caused it. Parse and validation problems are not exceptions;
they are recorded on parse results and variable states.
"""

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds surfaced by the core."""

    PERMISSION_DENIED = "permission_denied"
    CAPABILITY = "capability"
    FILE_NOT_FOUND = "file_not_found"
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    FILE_TOO_LARGE = "file_too_large"
    DIRECTORY = "directory"
    HANDLE_UNAVAILABLE = "handle_unavailable"
    BATCH_OPERATION = "batch_operation"
    UNKNOWN = "unknown"


class FileSystemError(Exception):
    """Exception raised by handle, permission and batch operations.

    Attributes:
        kind: The failure kind.
        message: Human-readable description.
        cause: The wrapped lower-level exception, if any.
        capability: Name of the missing platform primitive (CAPABILITY only).
        failed_operations: Per-operation failures (BATCH_OPERATION only).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: BaseException | None = None,
        *,
        capability: str | None = None,
        failed_operations: list[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.capability = capability
        self.failed_operations = list(failed_operations or [])
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"FileSystemError(kind={self.kind.value!r}, message={self.message!r})"

    def error_chain(self) -> str:
        """Render the error and its causes, one per line."""
        lines = [f"{self.kind.value}: {self.message}"]
        cause = self.cause
        while cause is not None:
            if isinstance(cause, FileSystemError):
                lines.append(f"  caused by {cause.kind.value}: {cause.message}")
                cause = cause.cause
            else:
                lines.append(f"  caused by {type(cause).__name__}: {cause}")
                cause = cause.__cause__
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for diagnostics and notifications."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        if self.capability is not None:
            data["capability"] = self.capability
        if self.failed_operations:
            data["failed_operations"] = [
                {"index": op.index, "error": str(op.error)} for op in self.failed_operations
            ]
        return data


def to_filesystem_error(error: BaseException) -> FileSystemError:
    """Normalize any exception into a FileSystemError.

    Args:
        error: The exception to convert.

    Returns:
        The error itself if it already is a FileSystemError, else a wrapper
        whose kind is inferred from the builtin exception type.
    """
    if isinstance(error, FileSystemError):
        return error

    if isinstance(error, PermissionError):
        return FileSystemError(ErrorKind.PERMISSION_DENIED, str(error) or "Permission denied", error)
    if isinstance(error, FileNotFoundError):
        return FileSystemError(ErrorKind.FILE_NOT_FOUND, str(error) or "File not found", error)
    if isinstance(error, (IsADirectoryError, NotADirectoryError)):
        return FileSystemError(ErrorKind.DIRECTORY, str(error), error)
    if isinstance(error, NotImplementedError):
        return FileSystemError(
            ErrorKind.CAPABILITY, str(error) or "Operation not supported", error
        )
    if isinstance(error, OSError):
        return FileSystemError(ErrorKind.FILE_READ, str(error), error)

    return FileSystemError(ErrorKind.UNKNOWN, str(error) or type(error).__name__, error)
