"""Bounded, throttled fan-out over a thread pool.

Units are dispatched one at a time from the calling thread. Each dispatch
first takes a slot of a bounded semaphore (so at most ``limit`` units are in
flight) and is followed by a fixed sleep, which throttles the dispatch rate
rather than the call rate. Results land at the index of their input item.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ErrorPolicy(Enum):
    # Every dispatched unit runs to completion; failures never cancel siblings.
    RUN_ALL = "run_all"
    # Stop dispatching after the first failure; units already running finish.
    STOP_DISPATCH = "stop_dispatch"


@dataclass
class FanOutResult(Generic[R]):
    results: list[R | None]
    errors: list[BaseException | None]
    first_error: BaseException | None = None
    dispatched: int = 0

    @property
    def ok(self) -> bool:
        return self.first_error is None


@dataclass
class _FirstError:
    error: BaseException | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)

    def record(self, error: BaseException) -> None:
        with self.lock:
            if self.error is None:
                self.error = error

    def get(self) -> BaseException | None:
        with self.lock:
            return self.error


def fan_out(
    func: Callable[[T], R],
    items: Iterable[T],
    limit: int,
    dispatch_delay: float = 0.0,
    policy: ErrorPolicy = ErrorPolicy.RUN_ALL,
    limiter: threading.Semaphore | None = None,
) -> FanOutResult[R]:
    """Apply ``func`` to every item with at most ``limit`` calls in flight.

    ``dispatch_delay`` seconds pass between consecutive dispatches. When a
    ``limiter`` is given, each call additionally holds one of its slots, which
    lets several fan-outs share one global concurrency budget.

    The first error is whichever worker records it first, not necessarily the
    lowest index. Failed items leave ``None`` in ``results`` and their
    exception in ``errors``.
    """
    items = list(items)
    outcome: FanOutResult[R] = FanOutResult(results=[None] * len(items), errors=[None] * len(items))
    if not items:
        return outcome

    limit = max(1, limit)
    slots = threading.BoundedSemaphore(limit)
    first_error = _FirstError()

    def _run(index: int, item: T) -> None:
        try:
            with limiter if limiter is not None else nullcontext():
                outcome.results[index] = func(item)
        except Exception as e:
            outcome.errors[index] = e
            first_error.record(e)
            logger.debug("Fan-out unit %d failed: %s", index, e)
        finally:
            slots.release()

    futures = []
    with ThreadPoolExecutor(max_workers=limit) as pool:
        for index, item in enumerate(items):
            slots.acquire()
            if policy is ErrorPolicy.STOP_DISPATCH and first_error.get() is not None:
                slots.release()
                logger.debug("Stopping dispatch after %d of %d units", index, len(items))
                break
            futures.append(pool.submit(_run, index, item))
            if dispatch_delay > 0 and index < len(items) - 1:
                time.sleep(dispatch_delay)
        wait(futures)

    outcome.dispatched = len(futures)
    outcome.first_error = first_error.get()
    return outcome
