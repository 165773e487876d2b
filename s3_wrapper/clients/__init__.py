# Client packages
from .s3_manager import S3Manager, create_s3_client

__all__ = ['S3Manager', 'create_s3_client']
