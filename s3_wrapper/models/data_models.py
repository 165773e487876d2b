"""
Core data models for the S3 wrapper.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Watermark value before the first poll
MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ObjectRecord:
    """A listed object, used only for change detection."""
    key: str
    last_modified: datetime
    size: int = 0
    etag: str = ''


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that an object was written or changed."""
    file_name: str
    last_modified: Optional[datetime] = None
    external: bool = False


@dataclass
class UploadSession:
    """State of one multipart upload. Owned by a single write_large call."""
    key: str
    upload_id: str
    part_number: int = 1
    completed_parts: List[Tuple[int, str]] = field(default_factory=list)

    def add_part(self, etag: str) -> int:
        """Record the tag of the part just uploaded and advance the counter."""
        number = self.part_number
        self.completed_parts.append((number, etag))
        self.part_number += 1
        return number

    def to_parts(self) -> List[dict]:
        """Part list in the shape expected by CompleteMultipartUpload."""
        return [
            {'PartNumber': number, 'ETag': etag}
            for number, etag in self.completed_parts
        ]
