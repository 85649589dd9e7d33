"""Trigger sink that runs captures on a worker thread.

Wraps a plain capture callable (the profiler integration) so the engine can
dispatch fire-and-forget: ``start_capture`` only submits work to a single
worker thread and returns a handle; when the callable returns or raises, the
outcome is reported through the completion callback.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from profiler_trigger.domain.entities.trigger import CaptureOutcome, TriggerEvent
from profiler_trigger.domain.value_objects.identifiers import CaptureHandle
from profiler_trigger.ports.outbound.trigger_sink import SinkUnavailable

logger = logging.getLogger(__name__)

CaptureFunction = Callable[[TriggerEvent], object]
CompletionCallback = Callable[[CaptureHandle, CaptureOutcome], object]


class ExecutorTriggerSink:
    """TriggerSink backed by a ThreadPoolExecutor."""

    def __init__(
        self,
        capture: CaptureFunction,
        on_complete: Optional[CompletionCallback] = None,
        max_workers: int = 1,
    ) -> None:
        """Initialize the sink.

        Args:
            capture: Callable performing the capture; blocks for its duration.
            on_complete: Completion callback, usually ``engine.on_capture_complete``.
            max_workers: Worker threads running captures.
        """
        self._capture = capture
        self._on_complete = on_complete
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="profiler-capture"
        )
        self._lock = threading.Lock()
        self._closed = False

    def attach(self, on_complete: CompletionCallback) -> None:
        """Set the completion callback."""
        self._on_complete = on_complete

    def start_capture(self, event: TriggerEvent) -> CaptureHandle:
        handle = CaptureHandle(event.trigger_id)
        with self._lock:
            if self._closed:
                raise SinkUnavailable("capture executor is shut down")
            try:
                self._executor.submit(self._run, handle, event)
            except RuntimeError as e:
                raise SinkUnavailable(str(e)) from e
        return handle

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting captures and optionally wait for running ones."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _run(self, handle: CaptureHandle, event: TriggerEvent) -> None:
        outcome = CaptureOutcome.SUCCEEDED
        try:
            self._capture(event)
        except Exception:
            logger.exception(f"Capture {handle} failed")
            outcome = CaptureOutcome.FAILED
        finally:
            if self._on_complete is not None:
                self._on_complete(handle, outcome)
