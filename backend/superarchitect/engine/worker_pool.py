"""Bounded-concurrency executor over an ordered list of async work items.

Workers pull from a shared cursor, so a slow item never holds back items that
an idle worker could pick up. Every input index gets exactly one output slot;
a failing item fills its slot with an ``ItemError`` and the rest of the queue
keeps draining.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from superarchitect.errors import ConfigurationError, ItemError

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class ItemResult(Generic[R]):
    """Outcome of one work item. Exactly one of ``value``/``error`` is meaningful."""

    index: int
    value: R | None = None
    error: ItemError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_concurrency(concurrency: int) -> None:
    if isinstance(concurrency, bool) or not isinstance(concurrency, int):
        raise ConfigurationError(f"concurrency must be an integer, got {concurrency!r}")
    if concurrency <= 0:
        raise ConfigurationError(f"concurrency must be positive, got {concurrency}")


def validate_timeout(timeout: float | None) -> None:
    if timeout is not None and timeout <= 0:
        raise ConfigurationError(f"item timeout must be positive or None, got {timeout}")


async def run_bounded(
    items: Sequence[T],
    process: Callable[[T], Awaitable[R]],
    concurrency: int,
    on_progress: ProgressCallback | None = None,
    *,
    timeout: float | None = None,
    label: str = "work_queue",
) -> list[ItemResult[R]]:
    """Run ``process`` over ``items`` with at most ``concurrency`` in flight.

    Args:
        items: Work items; output order matches this order.
        process: Async unit of work for one item.
        concurrency: Maximum simultaneous items. Non-positive values raise
            ``ConfigurationError`` before anything runs.
        on_progress: Called as ``(done, total)`` after each item settles,
            success or failure. ``done`` rises by exactly one per call.
        timeout: Optional per-item timeout in seconds. A timeout is recorded
            as that item's error like any other failure.
        label: Name used in log events.

    Returns:
        One ``ItemResult`` per input item, in input order.
    """
    validate_concurrency(concurrency)
    validate_timeout(timeout)

    total = len(items)
    if total == 0:
        return []

    slots: list[ItemResult[R] | None] = [None] * total
    # Shared by all workers. next() never awaits, so each index is claimed once.
    cursor = iter(enumerate(items))
    done = 0

    async def _settle(index: int, item: T) -> ItemResult[R]:
        try:
            async with asyncio.timeout(timeout):
                value = await process(item)
        except Exception as exc:
            logger.warning(
                "work_item_failed",
                queue=label,
                index=index,
                error_type=type(exc).__name__,
                error=str(exc)[:200],
            )
            return ItemResult(index=index, error=ItemError(index, exc))
        return ItemResult(index=index, value=value)

    async def _worker() -> None:
        nonlocal done
        for index, item in cursor:
            slots[index] = await _settle(index, item)
            done += 1
            if on_progress is not None:
                on_progress(done, total)

    workers = min(concurrency, total)
    logger.debug("work_queue_start", queue=label, total=total, workers=workers)
    await asyncio.gather(*(_worker() for _ in range(workers)))

    failed = sum(1 for slot in slots if slot is not None and not slot.ok)
    logger.info("work_queue_complete", queue=label, total=total, failed=failed)
    return [slot for slot in slots if slot is not None]
