"""Bounded-concurrency execution of independent async operations.

Results stay aligned with the input order, individual failures are collected
instead of raised, and progress is reported once per settled operation.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from promptier.core.errors import ErrorKind, FileSystemError, to_filesystem_error

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

Operation = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class BatchProgress:
    """Progress snapshot passed to ``on_progress``."""

    completed: int
    total: int
    percentage: int

    @classmethod
    def of(cls, completed: int, total: int) -> "BatchProgress":
        percentage = round(completed / total * 100) if total else 100
        return cls(completed=completed, total=total, percentage=percentage)


@dataclass(frozen=True)
class FailedOperation:
    """A failed operation and its position in the input."""

    index: int
    error: FileSystemError


@dataclass(frozen=True)
class BatchOptions:
    """Execution options.

    Attributes:
        continue_on_error: Keep issuing operations after a failure.
        max_concurrent: Operations in flight at once. 1 runs strictly
            sequentially; 0 removes the limit.
        on_progress: Called after every settled operation.
    """

    continue_on_error: bool = False
    max_concurrent: int = 0
    on_progress: Callable[[BatchProgress], None] | None = None

    def __post_init__(self) -> None:
        if self.max_concurrent < 0:
            raise ValueError("max_concurrent must not be negative")


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch.

    Attributes:
        results: One slot per input operation; None where the operation
            failed or was never started.
        failed_operations: Failures ordered by index.
    """

    results: tuple[Any, ...] = ()
    failed_operations: tuple[FailedOperation, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.failed_operations

    def raise_for_failures(self) -> None:
        """Raise a BATCH_OPERATION error if any operation failed."""
        if self.success:
            return
        raise FileSystemError(
            ErrorKind.BATCH_OPERATION,
            f"{len(self.failed_operations)} of {len(self.results)} operations failed",
            self.failed_operations[0].error,
            failed_operations=list(self.failed_operations),
        )


async def execute_batch(
    operations: Sequence[Operation],
    options: BatchOptions | None = None,
) -> BatchResult:
    """Run operations with bounded concurrency.

    Args:
        operations: Zero-argument coroutine functions.
        options: Execution options.

    Returns:
        Index-aligned results and the collected failures.

    Raises:
        Exception: Only for faults outside the operations themselves, for
            example a raising ``on_progress`` callback.

    Example:
        ```python
        result = await execute_batch(
            [lambda h=h: h.read() for h in handles],
            BatchOptions(max_concurrent=4, continue_on_error=True),
        )
        ```
    """
    options = options or BatchOptions()
    total = len(operations)

    if total == 0:
        return BatchResult()

    results: list[Any] = [None] * total
    failures: list[FailedOperation] = []
    completed = 0

    async def run(index: int) -> None:
        nonlocal completed
        try:
            results[index] = await operations[index]()
        except Exception as e:
            error = to_filesystem_error(e)
            logger.debug(f"Batch operation {index} failed: {error.message}")
            failures.append(FailedOperation(index=index, error=error))

        completed += 1
        if options.on_progress is not None:
            options.on_progress(BatchProgress.of(completed, total))

    def may_continue() -> bool:
        return options.continue_on_error or not failures

    try:
        if options.max_concurrent == 1 or total == 1:
            for index in range(total):
                await run(index)
                if not may_continue():
                    break
        else:
            next_index = 0

            async def worker() -> None:
                nonlocal next_index
                while next_index < total and may_continue():
                    index = next_index
                    next_index += 1
                    await run(index)

            workers = min(options.max_concurrent or total, total)
            await asyncio.gather(*(worker() for _ in range(workers)))
    except Exception:
        logger.exception("Unexpected error while executing batch")
        raise

    failures.sort(key=lambda failure: failure.index)

    if failures:
        logger.info(f"Batch finished with {len(failures)} failure(s) out of {total} operation(s)")

    return BatchResult(results=tuple(results), failed_operations=tuple(failures))


def group_operations(items: Iterable[T], key_fn: Callable[[T], K]) -> dict[K, list[T]]:
    """Group items by key, preserving input order within each group."""
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups
