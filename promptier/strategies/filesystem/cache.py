"""Handle-aware cache for file contents and directory listings."""

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from promptier.core.cache import ExpiringCache
from promptier.interfaces.handle import BaseHandle

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class HandleCache(ExpiringCache):
    """ExpiringCache keyed by handle identity plus read options.

    The same handle read with the same options always maps to the same key;
    any differing option (encoding, depth, patterns) yields a different key.
    """

    @staticmethod
    def generate_key(handle: BaseHandle, options: dict[str, Any] | None = None) -> str:
        """Build a deterministic cache key.

        Args:
            handle: The handle being read.
            options: Read options. ``None`` values are ignored.

        Returns:
            ``"<kind>:<identity>"`` followed by the JSON-encoded options, if any.
        """
        key = f"{handle.kind.value}:{handle.identity}"
        relevant = {k: v for k, v in (options or {}).items() if v is not None}
        if relevant:
            key += ":" + json.dumps(relevant, sort_keys=True, default=str)
        return key

    def cache_file_content(
        self,
        handle: BaseHandle,
        content: str,
        options: dict[str, Any] | None = None,
        ttl: float | None = None,
    ) -> str:
        return self.set(self.generate_key(handle, options), content, ttl)

    def get_cached_file_content(
        self,
        handle: BaseHandle,
        options: dict[str, Any] | None = None,
    ) -> str | None:
        return self.get(self.generate_key(handle, options))


def cached(
    cache: ExpiringCache,
    key_fn: Callable[..., str],
    ttl: float | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Memoize an async function through ``cache``.

    Args:
        cache: Cache to store results in.
        key_fn: Builds the cache key from the call arguments.
        ttl: Time-to-live for stored results; None uses the cache default.

    Example:
        ```python
        @cached(cache, lambda handle: HandleCache.generate_key(handle, {"op": "size"}))
        async def file_size(handle):
            return len(await handle.read())
        ```
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            key = key_fn(*args, **kwargs)
            hit = cache.get(key)
            if hit is not None:
                return hit
            return cache.set(key, await func(*args, **kwargs), ttl)

        return wrapper

    return decorator
