"""Background execution for preprocessing and inference.

Architecture:
    controller / FastAPI -> InferencePool.submit / run -> ThreadPoolExecutor(1) -> ONNX inference

A single worker thread keeps the interaction thread free while exactly one
image is being classified. Work is handed back as a future.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InferencePool:
    """Owns the worker thread used for ML inference."""

    def __init__(self, max_workers: int = 1) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="inference",
        )
        self._active_count: int = 0
        self._counter_lock = threading.Lock()

    def submit(self, func: Callable[..., T], *args: object) -> Future[T]:
        """Schedule ``func(*args)`` on the worker and return its future."""
        with self._counter_lock:
            self._active_count += 1
        future = self._executor.submit(func, *args)
        future.add_done_callback(self._on_done)
        return future

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Run a synchronous function on the worker and await its result."""
        return await asyncio.wrap_future(self.submit(func, *args))

    @property
    def active_count(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        with self._counter_lock:
            return self._active_count

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)

    def _on_done(self, _future: Future[object]) -> None:
        with self._counter_lock:
            self._active_count -= 1
