"""
Configuration classes for the S3 wrapper.
"""
import os
from dataclasses import dataclass
from typing import Optional

# Minimum part size accepted by the S3 multipart protocol
MIN_PART_SIZE = 5 * 1024 * 1024


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


@dataclass
class S3Config:
    """Configuration for S3 service connection."""
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    region: Optional[str] = None
    use_https: bool = False

    @property
    def endpoint_url(self) -> Optional[str]:
        """Endpoint as a URL, or None to use the provider default."""
        if not self.endpoint:
            return None
        if '://' in self.endpoint:
            return self.endpoint
        scheme = 'https' if self.use_https else 'http'
        return f"{scheme}://{self.endpoint}"

    @classmethod
    def from_env(cls, prefix: str = 'WRAPPER') -> 'S3Config':
        """Create S3Config from environment variables with given prefix."""
        return cls(
            endpoint=os.getenv(f'{prefix}_S3_ENDPOINT', ''),
            access_key=os.getenv(f'{prefix}_S3_ACCESS_KEY', ''),
            secret_key=os.getenv(f'{prefix}_S3_SECRET_KEY', ''),
            bucket=os.getenv(f'{prefix}_S3_BUCKET', ''),
            region=os.getenv(f'{prefix}_S3_REGION'),
            use_https=_env_bool(f'{prefix}_S3_USE_HTTPS')
        )


@dataclass
class WrapperConfig:
    """Main configuration for the wrapper, its transfers and its monitor."""
    s3: S3Config
    poll_interval: float = 5.0
    error_backoff: float = 30.0
    part_size: int = MIN_PART_SIZE
    max_retries: int = 3
    backoff_factor: float = 1.0
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(
                f"part_size must be at least {MIN_PART_SIZE} bytes, got {self.part_size}"
            )
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.error_backoff < 0:
            raise ValueError("error_backoff must not be negative")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")

    @classmethod
    def from_env(cls, prefix: str = 'WRAPPER') -> 'WrapperConfig':
        """Create WrapperConfig from environment variables."""
        return cls(
            s3=S3Config.from_env(prefix),
            poll_interval=float(os.getenv('POLL_INTERVAL', '5')),
            error_backoff=float(os.getenv('ERROR_BACKOFF', '30')),
            part_size=int(os.getenv('PART_SIZE', str(MIN_PART_SIZE))),
            max_retries=int(os.getenv('MAX_RETRIES', '3')),
            log_level=os.getenv('LOG_LEVEL', 'INFO')
        )
