"""
S3 Wrapper - byte/object storage, multipart transfers and change notifications for S3 buckets.
"""

from .services.s3_wrapper import S3Wrapper
from .clients.s3_manager import S3Manager
from .models.config import WrapperConfig, S3Config
from .models.data_models import ChangeEvent, ObjectRecord, UploadSession
from .exceptions import (
    S3WrapperError,
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectDecodeError,
    TransferError,
    ListingError
)

__version__ = "1.0.0"
__all__ = [
    "S3Wrapper",
    "S3Manager",
    "WrapperConfig",
    "S3Config",
    "ChangeEvent",
    "ObjectRecord",
    "UploadSession",
    "S3WrapperError",
    "ObjectExistsError",
    "ObjectNotFoundError",
    "ObjectDecodeError",
    "TransferError",
    "ListingError"
]
