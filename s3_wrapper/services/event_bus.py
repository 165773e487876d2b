"""
Ordered, single-consumer delivery of change events to subscriber callbacks.
"""
import itertools
import queue
import threading
from typing import Callable, Dict, Optional

from loguru import logger

from ..models.data_models import ChangeEvent

Callback = Callable[[ChangeEvent], None]

# Marks the end of the stream for the delivery loop
_CLOSED = object()


class EventBus:
    """
    Unbounded FIFO channel between event producers and subscriber callbacks.

    Producers (the change monitor and write operations) call ``publish`` and
    never block. A single delivery thread takes events in order and invokes
    every subscriber, in registration order, before taking the next one.
    """

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._subscribers: Dict[int, Callback] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, callback: Callback) -> int:
        """Register a callback and return a handle for ``unsubscribe``."""
        with self._lock:
            handle = next(self._handles)
            self._subscribers[handle] = callback
        return handle

    def unsubscribe(self, handle: int) -> bool:
        """Remove a callback. Returns False if the handle is unknown."""
        with self._lock:
            return self._subscribers.pop(handle, None) is not None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def publish(self, event: ChangeEvent) -> bool:
        """
        Enqueue an event for delivery.

        Returns:
            bool: False if the bus is closed and the event was dropped
        """
        with self._lock:
            if self._closed:
                logger.debug(f"Event bus closed, dropping event for {event.file_name}")
                return False
            self._queue.put(event)
        return True

    def start(self) -> None:
        """Start the delivery thread, reopening the bus if it was closed."""
        if self._closed:
            # the previous loop must finish draining before the queue is replaced
            self.join()
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            if self._closed:
                self._queue = queue.Queue()
                self._closed = False
            self._thread = threading.Thread(
                target=self._deliver_loop, args=(self._queue,),
                name='s3-wrapper-delivery', daemon=True
            )
            self._thread.start()
        logger.debug("Event delivery loop started")

    def close(self) -> None:
        """Stop accepting events. Already queued events are still delivered."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the delivery thread to drain the queue and exit."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        if not thread.is_alive():
            self._thread = None
            logger.debug("Event delivery loop stopped")

    def _deliver_loop(self, events: "queue.Queue") -> None:
        while True:
            event = events.get()
            if event is _CLOSED:
                break
            self._dispatch(event)

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed for event {event.file_name}")
