"""Handle providers used to re-acquire stale handle references."""

import asyncio
import logging
from pathlib import Path

from promptier.interfaces.handle import BaseHandle, BaseHandleProvider, HandleKind
from promptier.strategies.filesystem.local import (
    ConsentCallback,
    LocalDirectoryHandle,
    LocalFileHandle,
)

logger = logging.getLogger(__name__)


class NullHandleProvider(BaseHandleProvider):
    """Provider for platforms where handles can only come from the user."""

    async def reacquire(self, kind: HandleKind, path: str | None, name: str) -> BaseHandle | None:
        return None


class PathHandleProvider(BaseHandleProvider):
    """Re-creates local handles from the path hint stored with a reference.

    Re-acquired handles start without grants; the permission gate asks for
    them again.
    """

    def __init__(self, consent: ConsentCallback | None = None) -> None:
        self._consent = consent

    async def reacquire(self, kind: HandleKind, path: str | None, name: str) -> BaseHandle | None:
        if not path:
            return None

        target = Path(path)
        match kind:
            case HandleKind.FILE:
                if await asyncio.to_thread(target.is_file):
                    logger.info(f"Re-acquired file handle for {name} at {target}")
                    return LocalFileHandle(target, consent=self._consent)
            case HandleKind.DIRECTORY:
                if await asyncio.to_thread(target.is_dir):
                    logger.info(f"Re-acquired directory handle for {name} at {target}")
                    return LocalDirectoryHandle(target, consent=self._consent)

        logger.warning(f"Cannot re-acquire {kind.value} {name}: {target} is missing")
        return None
