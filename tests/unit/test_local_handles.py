"""Unit tests for local-disk handles and filesystem operations."""

import asyncio

import pytest

from promptier.core.errors import ErrorKind, FileSystemError
from promptier.interfaces.handle import AccessMode, HandleKind, PermissionState
from promptier.strategies.filesystem.local import (
    LocalDirectoryHandle,
    LocalFileHandle,
    is_user_gesture_active,
    user_gesture,
)
from promptier.strategies.filesystem.operations import (
    ListOptions,
    directory_exists,
    file_exists,
    list_directory,
    list_recursive,
    read_file,
    read_file_content,
    read_file_with_access_handle,
    should_include,
    write_file,
)
from promptier.strategies.filesystem.permissions import PermissionGate
from promptier.strategies.filesystem.providers import NullHandleProvider, PathHandleProvider
from tests.fakes import FakeFileHandle


@pytest.fixture
def project(tmp_path):
    """A small directory tree:

    project/
        README.md
        docs/guide.md
        node_modules/pkg/index.js
        src/app.py
        src/lib/util.py
    """
    root = tmp_path / "project"
    (root / "docs").mkdir(parents=True)
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "src" / "lib").mkdir(parents=True)
    (root / "README.md").write_text("# Project")
    (root / "docs" / "guide.md").write_text("guide")
    (root / "node_modules" / "pkg" / "index.js").write_text("js")
    (root / "src" / "app.py").write_text("print('app')")
    (root / "src" / "lib" / "util.py").write_text("util")
    return root


@pytest.fixture
def granted_root(project):
    handle = LocalDirectoryHandle(project)
    handle.grant(AccessMode.READ)
    return handle


class TestLocalHandles:
    """Test suite for local file and directory handles."""

    # =========================================================================
    # Permission Tests
    # =========================================================================

    def test_new_handle_needs_permission(self, project):
        """Test that a fresh handle starts in the prompt state."""
        handle = LocalFileHandle(project / "README.md")

        assert asyncio.run(handle.query_permission(AccessMode.READ)) is PermissionState.PROMPT

    def test_request_outside_gesture_refused(self, project):
        """Test that prompting without user activation raises PermissionError."""
        handle = LocalFileHandle(project / "README.md")

        with pytest.raises(PermissionError):
            asyncio.run(handle.request_permission(AccessMode.READ))

    def test_request_inside_gesture(self, project):
        """Test that prompting during a gesture consults the consent callback."""
        allowed = LocalFileHandle(project / "README.md")
        refused = LocalFileHandle(project / "README.md", consent=lambda handle, mode: False)

        with user_gesture():
            assert is_user_gesture_active()
            granted = asyncio.run(allowed.request_permission(AccessMode.READ))
            denied = asyncio.run(refused.request_permission(AccessMode.READ))

        assert not is_user_gesture_active()
        assert granted is PermissionState.GRANTED
        assert denied is PermissionState.DENIED

    def test_readwrite_implies_read(self, project):
        """Test that a read-write grant also covers reads."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant(AccessMode.READWRITE)

        assert asyncio.run(handle.query_permission(AccessMode.READ)) is PermissionState.GRANTED

    def test_children_inherit_directory_grant(self, granted_root):
        """Test that a directory grant covers handles obtained from it."""

        async def run_test():
            child = await granted_root.get_file_handle("README.md")
            return await child.query_permission(AccessMode.READ), await child.read()

        state, data = asyncio.run(run_test())

        assert state is PermissionState.GRANTED
        assert data == b"# Project"

    def test_read_without_grant(self, project):
        """Test that reading without a grant raises PermissionError."""
        with pytest.raises(PermissionError):
            asyncio.run(LocalFileHandle(project / "README.md").read())

    def test_revoke(self, project):
        """Test that revoking returns the handle to the prompt state."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant()
        handle.revoke()

        assert asyncio.run(handle.query_permission(AccessMode.READ)) is PermissionState.PROMPT

    # =========================================================================
    # Handle Operation Tests
    # =========================================================================

    def test_metadata(self, project):
        """Test size, name and MIME type."""
        (project / "data.json").write_text("{}")
        handle = LocalFileHandle(project / "data.json")
        handle.grant()

        metadata = asyncio.run(handle.get_metadata())

        assert metadata.name == "data.json"
        assert metadata.size == 2
        assert metadata.mime_type == "application/json"

    def test_child_lookups(self, granted_root):
        """Test lookups of missing and wrongly typed children."""
        with pytest.raises(FileNotFoundError):
            asyncio.run(granted_root.get_file_handle("missing.txt"))
        with pytest.raises(IsADirectoryError):
            asyncio.run(granted_root.get_file_handle("src"))
        with pytest.raises(NotADirectoryError):
            asyncio.run(granted_root.get_directory_handle("README.md"))
        with pytest.raises(ValueError):
            asyncio.run(granted_root.get_file_handle("../escape"))

    def test_create_requires_readwrite(self, granted_root):
        """Test that creating entries needs read-write access."""
        with pytest.raises(PermissionError):
            asyncio.run(granted_root.get_file_handle("new.txt", create=True))

        granted_root.grant(AccessMode.READWRITE)
        handle = asyncio.run(granted_root.get_file_handle("new.txt", create=True))

        assert handle.path.exists()

    def test_exists(self, project):
        """Test existence checks follow the filesystem."""
        handle = LocalFileHandle(project / "README.md")
        assert asyncio.run(handle.exists())

        (project / "README.md").unlink()
        assert not asyncio.run(handle.exists())

    def test_providers(self, project):
        """Test re-acquisition by path hint."""
        provider = PathHandleProvider()

        async def run_test():
            file_handle = await provider.reacquire(HandleKind.FILE, str(project / "README.md"), "README.md")
            wrong_kind = await provider.reacquire(HandleKind.DIRECTORY, str(project / "README.md"), "README.md")
            no_path = await provider.reacquire(HandleKind.FILE, None, "README.md")
            null = await NullHandleProvider().reacquire(HandleKind.FILE, str(project / "README.md"), "x")
            return file_handle, wrong_kind, no_path, null

        file_handle, wrong_kind, no_path, null = asyncio.run(run_test())

        assert isinstance(file_handle, LocalFileHandle)
        assert wrong_kind is None
        assert no_path is None
        assert null is None


class TestFileOperations:
    """Test suite for the high-level file operations."""

    def test_read_file_requests_permission(self, project):
        """Test that read_file asks for access during a gesture."""
        handle = LocalFileHandle(project / "README.md")

        with user_gesture():
            assert asyncio.run(read_file(handle)) == "# Project"

    def test_read_file_denied(self, project):
        """Test that a refused prompt maps to PERMISSION_DENIED."""
        handle = LocalFileHandle(project / "README.md")

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(read_file(handle))

        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED

    def test_read_file_content_too_large(self, project):
        """Test the size limit check."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant()

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(read_file_content(handle, max_size=3))

        assert exc_info.value.kind is ErrorKind.FILE_TOO_LARGE

    def test_read_invalid_encoding(self):
        """Test that undecodable bytes are a FILE_READ error."""
        handle = FakeFileHandle("bin.dat", b"\xff\xfe\xfa")

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(read_file(handle))

        assert exc_info.value.kind is ErrorKind.FILE_READ

    def test_read_missing_file(self, project):
        """Test that a deleted file maps to FILE_NOT_FOUND."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant()
        (project / "README.md").unlink()

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(read_file(handle))

        assert exc_info.value.kind is ErrorKind.FILE_NOT_FOUND

    def test_write_file(self, project):
        """Test that writing asks for read-write access and replaces content."""
        handle = LocalFileHandle(project / "README.md")

        with user_gesture():
            asyncio.run(write_file(handle, "# Renamed"))

        assert (project / "README.md").read_text() == "# Renamed"

    def test_write_without_gesture(self, project):
        """Test that writing without access fails with PERMISSION_DENIED."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant(AccessMode.READ)

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(write_file(handle, "nope"))

        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED

    def test_access_handle_read(self, project):
        """Test reading through a low-level access handle."""
        handle = LocalFileHandle(project / "README.md")
        handle.grant()

        assert asyncio.run(read_file_with_access_handle(handle)) == b"# Project"

    def test_access_handle_unsupported(self):
        """Test that handles without access handles raise CAPABILITY."""
        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(read_file_with_access_handle(FakeFileHandle("a", "x")))

        assert exc_info.value.kind is ErrorKind.CAPABILITY
        assert exc_info.value.capability == "create_access_handle"

    def test_exists_helpers(self, granted_root):
        """Test file_exists and directory_exists."""

        async def run_test():
            return (
                await file_exists(granted_root, "README.md"),
                await file_exists(granted_root, "src"),
                await directory_exists(granted_root, "src"),
                await directory_exists(granted_root, "missing"),
            )

        assert asyncio.run(run_test()) == (True, False, True, False)

    # =========================================================================
    # Listing Tests
    # =========================================================================

    def test_list_directory_sorted(self, granted_root):
        """Test that direct children are listed by name."""
        entries = asyncio.run(list_directory(granted_root))

        assert [e.name for e in entries] == ["README.md", "docs", "node_modules", "src"]
        assert entries[1].kind is HandleKind.DIRECTORY

    def test_list_directory_denied(self, project):
        """Test that listing without access is PERMISSION_DENIED."""
        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(list_directory(LocalDirectoryHandle(project), PermissionGate()))

        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED

    def test_list_recursive_full(self, granted_root):
        """Test depth-first listing with relative paths."""
        entries = asyncio.run(list_recursive(granted_root))

        assert [e.path for e in entries] == [
            "README.md",
            "docs",
            "docs/guide.md",
            "node_modules",
            "node_modules/pkg",
            "node_modules/pkg/index.js",
            "src",
            "src/app.py",
            "src/lib",
            "src/lib/util.py",
        ]
        assert entries[-1].depth == 2

    def test_list_recursive_max_depth(self, granted_root):
        """Test that max_depth limits descent."""
        entries = asyncio.run(list_recursive(granted_root, ListOptions(max_depth=1)))

        paths = [e.path for e in entries]
        assert "src/lib" in paths
        assert "src/lib/util.py" not in paths

    def test_list_recursive_exclude_prunes(self, granted_root):
        """Test that excluded directories are skipped with their contents."""
        entries = asyncio.run(
            list_recursive(granted_root, ListOptions(exclude=("node_modules",)))
        )

        assert not any(e.path.startswith("node_modules") for e in entries)

    def test_list_recursive_include_filters(self, granted_root):
        """Test that include patterns filter entries but still descend."""
        entries = asyncio.run(list_recursive(granted_root, ListOptions(include=("*.py",))))

        assert [e.path for e in entries] == ["src/app.py", "src/lib/util.py"]

    def test_list_recursive_progress(self, granted_root):
        """Test that progress reaches every visited entry."""
        events = []

        asyncio.run(
            list_recursive(granted_root, ListOptions(max_depth=0, on_progress=events.append))
        )

        assert [e.completed for e in events] == [1, 2, 3, 4]
        assert events[-1].percentage == 100

    @pytest.mark.parametrize(
        "name,include,exclude,expected",
        [
            ("a.py", (), (), True),
            ("a.py", ("*.py",), (), True),
            ("a.md", ("*.py",), (), False),
            ("a.py", ("*.py",), ("a.*",), False),
            ("A.PY", ("*.py",), (), False),
        ],
    )
    def test_should_include(self, name, include, exclude, expected):
        """Test include and exclude precedence."""
        assert should_include(name, ListOptions(include=include, exclude=exclude)) is expected
