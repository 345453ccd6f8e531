"""Bounded fan-out/fan-in over a shared thread pool.

Every dispatched task gets its own ``numpy.random.Generator`` whose seed is
drawn from the coordinator's generator in task-index order, so the outcome of
a phase depends only on the coordinator's seed, never on completion order.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor, wait
import os
from typing import Callable, MutableSequence, Sequence, TypeVar

from loguru import logger
import numpy as np

from blockevo.exceptions import SlotOwnershipError, WorkerTaskError

__all__ = ["WorkerPool", "derive_seeds", "assign_slots"]

T = TypeVar("T")
Task = Callable[[int, np.random.Generator], T]

_SEED_BOUND = 2**63 - 1


def derive_seeds(rng: np.random.Generator, count: int) -> list[int]:
    """Draw ``count`` child seeds from ``rng``, one per task index."""
    return [int(seed) for seed in rng.integers(0, _SEED_BOUND, size=count)]


def _run_task(fn: Task, index: int, seed: int) -> T:
    return fn(index, np.random.default_rng(seed))


def assign_slots(
    target: MutableSequence[T], slots: Sequence[int], values: Sequence[T]
) -> None:
    """Write ``values[k]`` into ``target[slots[k]]``, checking slots are disjoint."""
    if len(slots) != len(values):
        raise SlotOwnershipError(f"{len(values)} result(s) for {len(slots)} slot(s)")
    if len(set(slots)) != len(slots):
        raise SlotOwnershipError(f"Slots claimed more than once: {sorted(slots)}")
    for slot, value in zip(slots, values):
        if not 0 <= slot < len(target):
            raise SlotOwnershipError(f"Slot {slot} outside 0..{len(target) - 1}")
        target[slot] = value


class WorkerPool:
    """Thread pool that runs indexed tasks and joins on all of them."""

    def __init__(
        self, max_workers: int | None = None, thread_name_prefix: str = "blockevo-worker"
    ):
        self.max_workers = max_workers or os.cpu_count() or 4
        self.thread_name_prefix = thread_name_prefix
        self._executor: ThreadPoolExecutor | None = None

    # ------------------------------------------------------------------
    # Executor management
    # ------------------------------------------------------------------

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.thread_name_prefix,
            )
            logger.debug(
                "[WorkerPool] Created ThreadPoolExecutor with {} workers", self.max_workers
            )
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.debug("[WorkerPool] Executor shut down")

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Fan-out / fan-in
    # ------------------------------------------------------------------

    async def map(self, fn: Task, count: int, rng: np.random.Generator) -> list[T]:
        """Run ``fn(i, rng_i)`` for ``i in range(count)`` and return results by index.

        All tasks finish before this returns or raises. The first failing task
        (by index) is re-raised as :class:`WorkerTaskError`.
        """
        seeds = derive_seeds(rng, count)
        if not seeds:
            return []
        loop = asyncio.get_running_loop()
        executor = self._get_executor()
        futures = [
            loop.run_in_executor(executor, _run_task, fn, index, seed)
            for index, seed in enumerate(seeds)
        ]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
        return self._collect(outcomes)

    def map_sync(self, fn: Task, count: int, rng: np.random.Generator) -> list[T]:
        """Blocking variant of :meth:`map` for callers outside an event loop."""
        seeds = derive_seeds(rng, count)
        if not seeds:
            return []
        executor = self._get_executor()
        futures: list[Future] = [
            executor.submit(_run_task, fn, index, seed) for index, seed in enumerate(seeds)
        ]
        wait(futures)
        outcomes = [
            f.exception() if f.exception() is not None else f.result() for f in futures
        ]
        return self._collect(outcomes)

    @staticmethod
    def _collect(outcomes: list) -> list:
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, BaseException):
                logger.error("[WorkerPool] Task {} failed: {}", index, outcome)
                raise WorkerTaskError(index, outcome) from outcome
        return list(outcomes)
