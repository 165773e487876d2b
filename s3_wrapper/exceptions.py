"""
Exception hierarchy for the S3 wrapper.
"""


class S3WrapperError(Exception):
    """Base exception for all S3 wrapper errors."""
    pass


class ObjectExistsError(S3WrapperError):
    """Raised when a write-once object is already present in the bucket."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object '{key}' already exists in bucket '{bucket}'")
        self.bucket = bucket
        self.key = key


class ObjectNotFoundError(S3WrapperError):
    """Raised when a requested object is not present in the bucket."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object '{key}' not found in bucket '{bucket}'")
        self.bucket = bucket
        self.key = key


class ObjectDecodeError(S3WrapperError):
    """Raised when object content cannot be decoded into the requested shape."""
    pass


class TransferError(S3WrapperError):
    """Raised when a multipart upload fails. The original failure is chained."""
    pass


class ListingError(S3WrapperError):
    """Raised by a failed bucket listing during monitoring."""
    pass
