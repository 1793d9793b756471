"""Screen flow of the app as an explicit state machine.

    PROMPT --start--> CAPTURING --capture+poll--> RESULT --back--> CAPTURING

Events that do not apply to the current state are ignored. A capture hands
the image to the pipeline on the inference pool; the result is picked up by
``poll`` (or ``wait``) once the future completes.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import StrEnum
from typing import TYPE_CHECKING

from trashtracker.core.messages import ERROR_PREFIX, error_message
from trashtracker.errors import AcquisitionCancelled

if TYPE_CHECKING:
    from trashtracker.core.messages import DisplayMessage
    from trashtracker.core.pipeline import ClassificationPipeline
    from trashtracker.ml.image_source import ImageSource
    from trashtracker.ml.inference import InferencePool

logger = logging.getLogger(__name__)


class ScreenState(StrEnum):
    PROMPT = "prompt"
    CAPTURING = "capturing"
    RESULT = "result"


class PresentationController:
    """Drives the prompt, capture and result screens for one user."""

    def __init__(self, pipeline: ClassificationPipeline, pool: InferencePool) -> None:
        self._pipeline = pipeline
        self._pool = pool
        self._lock = threading.RLock()
        self._state = ScreenState.PROMPT
        self._message: DisplayMessage | None = None
        self._pending: Future[DisplayMessage] | None = None
        self._acquiring = False

    @property
    def state(self) -> ScreenState:
        with self._lock:
            return self._state

    @property
    def message(self) -> DisplayMessage | None:
        """Message on the result screen; None on every other screen."""
        with self._lock:
            return self._message

    @property
    def pending(self) -> Future[DisplayMessage] | None:
        """Future of the classification in flight, if any."""
        with self._lock:
            return self._pending

    def start(self) -> ScreenState:
        with self._lock:
            if self._state is ScreenState.PROMPT:
                self._transition(ScreenState.CAPTURING)
            return self._state

    def capture(self, source: ImageSource) -> Future[DisplayMessage] | None:
        """Acquire an image and submit it for classification.

        Returns the pending future, or None when the event was ignored or the
        user cancelled.
        """
        with self._lock:
            if self._state is not ScreenState.CAPTURING or self._pending is not None or self._acquiring:
                logger.debug("Ignoring capture in state %s", self._state)
                return None
            self._acquiring = True

        # Acquisition may block on a camera; it runs without holding the lock.
        try:
            raw = source.acquire()
        except AcquisitionCancelled:
            logger.info("Image acquisition cancelled")
            return None
        finally:
            with self._lock:
                self._acquiring = False

        with self._lock:
            if self._state is not ScreenState.CAPTURING or self._pending is not None:
                logger.debug("Dropping image acquired after leaving the capture screen")
                return None
            self._pending = self._pool.submit(self._pipeline.run, raw)
            return self._pending

    def poll(self) -> ScreenState:
        """Move to the result screen if the pending classification finished."""
        with self._lock:
            future = self._pending
            if future is None or not future.done():
                return self._state

            self._pending = None
            exc = future.exception()
            if exc is not None:
                logger.error("Classification crashed: %s", exc, exc_info=exc)
                self._message = error_message(f"{ERROR_PREFIX}{exc}")
            else:
                self._message = future.result()
            self._transition(ScreenState.RESULT)
            return self._state

    def wait(self, timeout: float | None = None) -> ScreenState:
        """Block until the pending classification finishes, then poll."""
        future = self.pending
        if future is not None:
            try:
                future.exception(timeout=timeout)
            except FutureTimeoutError:
                return self.state
        return self.poll()

    def back(self) -> ScreenState:
        with self._lock:
            if self._state is ScreenState.RESULT:
                self._message = None
                self._transition(ScreenState.CAPTURING)
            return self._state

    def _transition(self, new_state: ScreenState) -> None:
        logger.debug("Screen %s -> %s", self._state, new_state)
        self._state = new_state
