"""
S3 wrapper facade combining transfers, change monitoring and event delivery.
"""
from typing import Any, BinaryIO, Callable, ContextManager, Optional, Type

from loguru import logger

from ..clients.s3_manager import S3Manager
from ..models.config import WrapperConfig
from ..models.data_models import ChangeEvent, UploadSession
from .change_monitor import ChangeMonitor
from .event_bus import EventBus
from .transfer_engine import TransferEngine


class S3Wrapper:
    """
    Convenience layer over a single bucket.

    Reads and writes go through the TransferEngine. Change notifications,
    from this process's own writes and from objects written by anyone else,
    reach ``on_new_file`` callbacks through one ordered EventBus.
    """

    def __init__(self, s3_manager: S3Manager, config: Optional[WrapperConfig] = None):
        """
        Initialize the wrapper around an existing S3Manager.

        Args:
            s3_manager: Store adapter for the bucket
            config: Polling and transfer settings; defaults are used when omitted
        """
        self.s3_manager = s3_manager
        self.config = config or WrapperConfig(s3=s3_manager.config)

        self.event_bus = EventBus()
        self.transfer = TransferEngine(s3_manager, self.event_bus, part_size=self.config.part_size)
        self.monitor = ChangeMonitor(
            s3_manager,
            self.event_bus,
            poll_interval=self.config.poll_interval,
            error_backoff=self.config.error_backoff,
            is_own_write=self.transfer.is_own_write
        )

        logger.info(f"S3Wrapper initialized for bucket: {self.bucket}")

    @classmethod
    def from_config(cls, config: WrapperConfig) -> 'S3Wrapper':
        """Build the S3 client, its manager and the wrapper from configuration."""
        s3_manager = S3Manager(
            config.s3,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor
        )
        return cls(s3_manager, config)

    @property
    def bucket(self) -> str:
        return self.s3_manager.bucket

    # Subscriptions

    def on_new_file(self, callback: Callable[[ChangeEvent], None]) -> int:
        """Register a callback for new-file events. Returns a handle for ``remove_listener``."""
        return self.event_bus.subscribe(callback)

    def remove_listener(self, handle: int) -> bool:
        return self.event_bus.unsubscribe(handle)

    # Transfers

    def write(self, key: str, data: bytes) -> None:
        self.transfer.write(key, data)

    def write_object(self, key: str, value: Any) -> None:
        self.transfer.write_object(key, value)

    def write_large(self, key: str, stream: BinaryIO) -> UploadSession:
        return self.transfer.write_large(key, stream)

    def read(self, key: str) -> bytes:
        return self.transfer.read(key)

    def read_object(self, key: str, cls: Optional[Type] = None) -> Any:
        return self.transfer.read_object(key, cls)

    def read_large(self, key: str) -> ContextManager[BinaryIO]:
        return self.transfer.read_large(key)

    # Monitoring

    def start_monitoring(self) -> None:
        self.monitor.start()

    def stop_monitoring(self) -> None:
        self.monitor.stop()

    def __enter__(self) -> 'S3Wrapper':
        self.start_monitoring()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop_monitoring()
