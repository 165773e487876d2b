# Services package
from .event_bus import EventBus
from .transfer_engine import TransferEngine
from .change_monitor import ChangeMonitor
from .s3_wrapper import S3Wrapper

__all__ = ['EventBus', 'TransferEngine', 'ChangeMonitor', 'S3Wrapper']
