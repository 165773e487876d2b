"""
Background polling of the bucket for objects changed by other writers.
"""
import threading
from typing import Callable, List, Optional

from loguru import logger

from ..clients.s3_manager import S3Manager
from ..exceptions import ListingError
from ..models.data_models import MIN_TIMESTAMP, ChangeEvent, ObjectRecord
from .event_bus import EventBus

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_ERROR_BACKOFF = 30.0


class ChangeMonitor:
    """
    Polls the bucket and publishes a ChangeEvent for every object whose
    modification time is newer than the last one seen.

    ``start`` spawns the poll thread and the event bus delivery thread and
    returns at once; ``stop`` cancels polling, closes the bus and waits for
    both threads. Both calls are idempotent.
    """

    def __init__(self, s3_manager: S3Manager, event_bus: EventBus,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 error_backoff: float = DEFAULT_ERROR_BACKOFF,
                 is_own_write: Optional[Callable[[ObjectRecord], bool]] = None):
        self.s3_manager = s3_manager
        self.event_bus = event_bus
        self.poll_interval = poll_interval
        self.error_backoff = error_backoff
        self.is_own_write = is_own_write or (lambda record: False)

        self._lifecycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        """Start monitoring. No-op if already running."""
        with self._lifecycle_lock:
            if self._thread is not None:
                return

            self._stop_event = threading.Event()
            self.event_bus.start()
            self._thread = threading.Thread(
                target=self._poll_loop, args=(self._stop_event,),
                name='s3-wrapper-monitor', daemon=True
            )
            self._thread.start()

        logger.info(f"Started monitoring bucket {self.s3_manager.bucket} "
                    f"(poll interval {self.poll_interval}s)")

    def stop(self) -> None:
        """Stop monitoring and wait for background work to finish. No-op if not running."""
        with self._lifecycle_lock:
            if self._thread is None:
                return

            self._stop_event.set()
            self.event_bus.close()
            if self._thread is not threading.current_thread():
                self._thread.join()
            self.event_bus.join()

            self._thread = None
            self._stop_event = None

        logger.info(f"Stopped monitoring bucket {self.s3_manager.bucket}")

    def _list(self, stop_event: threading.Event) -> List[ObjectRecord]:
        try:
            return self.s3_manager.list_objects(stop_event=stop_event)
        except Exception as e:
            raise ListingError(f"Listing bucket '{self.s3_manager.bucket}' failed: {e}") from e

    def _poll_loop(self, stop_event: threading.Event) -> None:
        watermark = MIN_TIMESTAMP

        while not stop_event.is_set():
            try:
                records = self._list(stop_event)
            except ListingError as e:
                logger.error(f"Error monitoring bucket, retrying in {self.error_backoff}s: {e}")
                stop_event.wait(self.error_backoff)
                continue

            if stop_event.is_set():
                break

            watermark = self._publish_changes(records, watermark)
            stop_event.wait(self.poll_interval)

        logger.debug("Poll loop exited")

    def _publish_changes(self, records: List[ObjectRecord], watermark):
        """Publish events for records newer than ``watermark`` and return the new watermark."""
        changed = sorted(
            (record for record in records if record.last_modified > watermark),
            key=lambda record: (record.last_modified, record.key)
        )
        if not changed:
            return watermark

        for record in changed:
            if self.is_own_write(record):
                logger.debug(f"Skipping own write: {record.key}")
                continue
            logger.debug(f"Detected change: {record.key} ({record.last_modified.isoformat()})")
            self.event_bus.publish(ChangeEvent(
                file_name=record.key,
                last_modified=record.last_modified,
                external=True
            ))

        return changed[-1].last_modified
