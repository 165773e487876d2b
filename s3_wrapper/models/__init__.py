"""
Models package for the S3 wrapper.
"""
from .data_models import ObjectRecord, ChangeEvent, UploadSession
from .config import S3Config, WrapperConfig, MIN_PART_SIZE

__all__ = [
    'ObjectRecord',
    'ChangeEvent',
    'UploadSession',
    'S3Config',
    'WrapperConfig',
    'MIN_PART_SIZE'
]
