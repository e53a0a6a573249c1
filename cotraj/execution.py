"""Explicit execution context for population-level work.

A population is cut into chunks; each chunk is handled by one call of a
per-chunk function, either inline or on a thread/process pool. Partial results
are either returned in chunk order (``map_chunks``) or folded with an
associative, commutative merge in whatever order workers finish
(``reduce_chunks``).
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Iterable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

EXECUTOR_KINDS = ("thread", "process")


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    """Parameters controlling how population work is distributed."""

    workers: int = 1
    # "thread" suits I/O-bound work such as map matching; "process" suits CPU-bound aggregation.
    executor: str = "thread"
    chunk_size: int = 256

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.executor not in EXECUTOR_KINDS:
            raise ValueError(f"executor must be one of {EXECUTOR_KINDS}, got {self.executor!r}")


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most ``size`` items."""

    it = iter(items)
    while chunk := list(islice(it, size)):
        yield chunk


class ExecutionContext:
    """Handle to the worker pool, acquired once and passed to every population call.

    Use as a context manager so the pool is shut down::

        with ExecutionContext(ExecutionConfig(workers=4)) as ctx:
            stats = transition_statistics(ctx, population, 0.01)

    With ``workers == 1`` everything runs inline in the calling thread.
    """

    def __init__(self, config: ExecutionConfig | None = None) -> None:
        self._cfg = config or ExecutionConfig()
        self._executor: Executor | None = None

    @property
    def config(self) -> ExecutionConfig:
        return self._cfg

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _pool(self) -> Executor:
        if self._executor is None:
            if self._cfg.executor == "process":
                self._executor = ProcessPoolExecutor(max_workers=self._cfg.workers)
            else:
                self._executor = ThreadPoolExecutor(max_workers=self._cfg.workers)
            logger.debug("Started %s pool with %s workers", self._cfg.executor, self._cfg.workers)
        return self._executor

    def map_chunks(self, fn: Callable[[list[T]], R], items: Iterable[T]) -> list[R]:
        """Apply ``fn`` to each chunk and return the results in chunk order."""

        chunks = chunked(items, self._cfg.chunk_size)
        if self._cfg.workers == 1:
            return [fn(chunk) for chunk in chunks]
        return list(self._pool().map(fn, chunks))

    def reduce_chunks(
        self,
        fn: Callable[[list[T]], R],
        items: Iterable[T],
        merge: Callable[[R, R], R],
        initial: R,
    ) -> R:
        """Apply ``fn`` to each chunk and fold the partials with ``merge`` as they complete.

        ``merge`` must be associative and commutative with ``initial`` as identity;
        the fold order depends on worker timing.
        """

        acc = initial
        chunks = chunked(items, self._cfg.chunk_size)
        if self._cfg.workers == 1:
            for chunk in chunks:
                acc = merge(acc, fn(chunk))
            return acc

        pool = self._pool()
        futures = [pool.submit(fn, chunk) for chunk in chunks]
        for fut in as_completed(futures):
            acc = merge(acc, fut.result())
        logger.debug("Merged %s partial results", len(futures))
        return acc
