"""Permission gate for file and directory handles.

Wraps the platform's permission primitives and maps their failures onto
``FileSystemError`` kinds. Denials are always recoverable: callers get
False or a typed error, never a crash.
"""

import logging

from promptier.core.errors import ErrorKind, FileSystemError
from promptier.interfaces.handle import AccessMode, BaseHandle, PermissionState

logger = logging.getLogger(__name__)


class PermissionGate:
    """Queries, requests and upgrades access grants on handles.

    Example:
        ```python
        gate = PermissionGate()
        if await gate.verify(handle, AccessMode.READ):
            data = await handle.read()
        ```
    """

    async def query(self, handle: BaseHandle, mode: AccessMode = AccessMode.READ) -> PermissionState:
        """Return the current grant state without prompting.

        Raises:
            FileSystemError: CAPABILITY if the handle cannot be queried
                without a prompt.
        """
        try:
            return await handle.query_permission(mode)
        except NotImplementedError as e:
            raise FileSystemError(
                ErrorKind.CAPABILITY,
                f"Cannot query {mode.value} permission for {handle.name}",
                e,
                capability="query_permission",
            ) from e

    async def request(self, handle: BaseHandle, mode: AccessMode = AccessMode.READ) -> bool:
        """Ask for ``mode`` access, possibly prompting the user.

        Returns:
            True if access was granted.

        Raises:
            FileSystemError: PERMISSION_DENIED if the platform refused to
                prompt (no user activation); CAPABILITY if the handle
                cannot prompt at all.
        """
        try:
            state = await handle.request_permission(mode)
        except PermissionError as e:
            raise FileSystemError(
                ErrorKind.PERMISSION_DENIED,
                f"Requesting {mode.value} access to {handle.name} requires user activation",
                e,
            ) from e
        except NotImplementedError as e:
            raise FileSystemError(
                ErrorKind.CAPABILITY,
                f"Cannot request {mode.value} permission for {handle.name}",
                e,
                capability="request_permission",
            ) from e

        granted = state is PermissionState.GRANTED
        if not granted:
            logger.info(f"{mode.value} access to {handle.name} was {state.value}")
        return granted

    async def verify(
        self,
        handle: BaseHandle,
        mode: AccessMode = AccessMode.READ,
        auto_request: bool = True,
    ) -> bool:
        """Check access, escalating to a request when allowed.

        Args:
            handle: The handle to check.
            mode: Access mode required.
            auto_request: Whether to prompt when the grant is missing.

        Returns:
            True if access is granted; False if it is missing and could not
            be obtained.

        Raises:
            FileSystemError: CAPABILITY if neither a silent query nor an
                allowed request is supported by the handle.
        """
        try:
            if await self.query(handle, mode) is PermissionState.GRANTED:
                return True
        except FileSystemError as e:
            if not auto_request:
                raise
            logger.debug(f"Falling back to a permission request for {handle.name}: {e.message}")

        if not auto_request:
            return False

        try:
            return await self.request(handle, mode)
        except FileSystemError as e:
            if e.kind is ErrorKind.PERMISSION_DENIED:
                logger.warning(f"Permission request for {handle.name} refused: {e.message}")
                return False
            raise

    async def upgrade(self, handle: BaseHandle) -> bool:
        """Escalate a handle to read-write access."""
        return await self.request(handle, AccessMode.READWRITE)

    async def is_permission_needed(
        self,
        handle: BaseHandle,
        mode: AccessMode = AccessMode.READ,
    ) -> bool:
        """Return True unless the handle already holds ``mode`` access.

        Handles that cannot be queried count as needing permission.
        """
        try:
            return await self.query(handle, mode) is not PermissionState.GRANTED
        except FileSystemError:
            return True
