"""
Whole-object and multipart transfers between local data and the bucket.
"""
import dataclasses
import hashlib
import json
import threading
from collections import OrderedDict
from contextlib import closing, contextmanager
from typing import Any, BinaryIO, Iterator, List, Optional, Type

from loguru import logger

from ..exceptions import ObjectDecodeError, ObjectExistsError, TransferError
from ..clients.s3_manager import S3Manager
from ..models.config import MIN_PART_SIZE
from ..models.data_models import ChangeEvent, ObjectRecord, UploadSession
from .event_bus import EventBus

# Own writes remembered while waiting for the monitor to list them
MAX_OWN_WRITES = 10000


def _read_chunk(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, accumulating short reads until EOF."""
    chunks = []
    remaining = size
    while remaining > 0:
        data = stream.read(remaining)
        if not data:
            break
        chunks.append(data)
        remaining -= len(data)
    return b''.join(chunks)


def multipart_etag(part_digests: List[bytes]) -> str:
    """ETag S3 assigns to a multipart object built from parts with these MD5 digests."""
    combined = hashlib.md5(b''.join(part_digests)).hexdigest()
    return f"{combined}-{len(part_digests)}"


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    to_dict = getattr(value, 'to_dict', None)
    if callable(to_dict):
        return to_dict()
    return value


class TransferEngine:
    """
    Moves whole objects and large objects between local data and the bucket.

    Every successful write publishes a ChangeEvent on the event bus and is
    remembered by ETag, so the change monitor can tell this process's own
    writes apart from external ones.
    """

    def __init__(self, s3_manager: S3Manager, event_bus: EventBus,
                 part_size: int = MIN_PART_SIZE, max_own_writes: int = MAX_OWN_WRITES):
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size must be at least {MIN_PART_SIZE} bytes")
        self.s3_manager = s3_manager
        self.event_bus = event_bus
        self.part_size = part_size
        self.max_own_writes = max_own_writes
        self._own_writes: "OrderedDict[str, str]" = OrderedDict()
        self._own_writes_lock = threading.Lock()

    @property
    def bucket(self) -> str:
        return self.s3_manager.bucket

    # Own-write ledger

    def _remember(self, key: str, etag: str) -> None:
        with self._own_writes_lock:
            self._own_writes[key] = etag
            self._own_writes.move_to_end(key)
            while len(self._own_writes) > self.max_own_writes:
                self._own_writes.popitem(last=False)

    def _forget(self, key: str, etag: str) -> None:
        with self._own_writes_lock:
            if self._own_writes.get(key) == etag:
                del self._own_writes[key]

    def is_own_write(self, record: ObjectRecord) -> bool:
        """
        True if the listed object is the version this engine last wrote.

        The entry is dropped either way: the monitor only asks about objects
        newer than its watermark, and the watermark then moves past them.
        """
        with self._own_writes_lock:
            expected = self._own_writes.pop(record.key, None)
        return expected is not None and expected == record.etag

    def _notify(self, key: str) -> None:
        self.event_bus.publish(ChangeEvent(file_name=key))

    # Writes

    def write(self, key: str, data: bytes) -> None:
        """
        Store ``data`` at ``key``. Whole-object writes are write-once.

        The existence check and the put are separate store calls, so two
        writers racing on the same key can both pass the check.

        Raises:
            ObjectExistsError: If the key is already present
        """
        if self.s3_manager.object_exists(key):
            raise ObjectExistsError(self.bucket, key)

        expected = hashlib.md5(data).hexdigest()
        self._remember(key, expected)
        try:
            etag = self.s3_manager.put_object(key, data)
        except Exception:
            self._forget(key, expected)
            raise

        self._remember(key, etag or expected)
        logger.info(f"Wrote {len(data)} bytes to {self.bucket}/{key}")
        self._notify(key)

    def write_object(self, key: str, value: Any) -> None:
        """
        Serialize ``value`` as UTF-8 JSON and write it with ``write``.

        Raises:
            TypeError: If the value holds something JSON cannot represent
        """
        payload = json.dumps(_to_jsonable(value))
        self.write(key, payload.encode('utf-8'))

    def write_large(self, key: str, stream: BinaryIO,
                    part_size: Optional[int] = None) -> UploadSession:
        """
        Upload ``stream`` to ``key`` as a multipart upload.

        Parts are uploaded sequentially, numbered from 1. On any failure the
        upload is aborted before the error is raised.

        Returns:
            UploadSession: The completed session

        Raises:
            TransferError: If the upload could not be started or completed
        """
        part_size = part_size or self.part_size
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size must be at least {MIN_PART_SIZE} bytes")

        try:
            upload_id = self.s3_manager.create_multipart_upload(key)
        except Exception as e:
            raise TransferError(f"Could not start multipart upload for '{key}' in bucket '{self.bucket}'") from e

        session = UploadSession(key=key, upload_id=upload_id)
        digests: List[bytes] = []
        expected = None
        try:
            while True:
                chunk = _read_chunk(stream, part_size)
                # an empty stream still needs one (empty) part to complete
                if not chunk and session.completed_parts:
                    break
                etag = self.s3_manager.upload_part(key, upload_id, session.part_number, chunk)
                digests.append(hashlib.md5(chunk).digest())
                number = session.add_part(etag)
                logger.debug(f"Uploaded part {number} ({len(chunk)} bytes) of {key}")
                if len(chunk) < part_size:
                    break

            expected = multipart_etag(digests)
            self._remember(key, expected)
            etag = self.s3_manager.complete_multipart_upload(key, upload_id, session.to_parts())
        except Exception as e:
            if expected is not None:
                self._forget(key, expected)
            self._abort(session)
            raise TransferError(
                f"Multipart upload of '{key}' to bucket '{self.bucket}' failed "
                f"after {len(session.completed_parts)} parts: {e}"
            ) from e

        self._remember(key, etag or expected)
        logger.info(f"Wrote {key} to {self.bucket} in {len(session.completed_parts)} parts")
        self._notify(key)
        return session

    def _abort(self, session: UploadSession) -> None:
        try:
            self.s3_manager.abort_multipart_upload(session.key, session.upload_id)
            logger.warning(f"Aborted multipart upload {session.upload_id} for {session.key}")
        except Exception as e:
            logger.error(f"Failed to abort multipart upload {session.upload_id} for {session.key}: {e}")

    # Reads

    def read(self, key: str) -> bytes:
        """
        Return the full content of ``key``.

        Raises:
            ObjectNotFoundError: If the key is absent
        """
        with closing(self.s3_manager.get_object_stream(key)) as stream:
            return stream.read()

    def read_object(self, key: str, cls: Optional[Type] = None) -> Any:
        """
        Read ``key`` and decode it from JSON.

        If ``cls`` is given the decoded data is turned into an instance,
        through ``cls.from_dict`` when it exists and ``cls(**data)`` otherwise.

        Raises:
            ObjectNotFoundError: If the key is absent
            ObjectDecodeError: If the content does not decode into the shape
        """
        data = self.read(key)
        try:
            value = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise ObjectDecodeError(f"Object '{key}' in bucket '{self.bucket}' is not valid JSON: {e}") from e

        if cls is None:
            return value
        try:
            from_dict = getattr(cls, 'from_dict', None)
            if callable(from_dict):
                return from_dict(value)
            return cls(**value)
        except (TypeError, ValueError, KeyError) as e:
            raise ObjectDecodeError(f"Object '{key}' does not match {cls.__name__}: {e}") from e

    @contextmanager
    def read_large(self, key: str) -> Iterator[BinaryIO]:
        """
        Stream ``key`` straight from the store's response body.

        The body is closed when the block exits, drained or not.

        Raises:
            ObjectNotFoundError: If the key is absent
        """
        stream = self.s3_manager.get_object_stream(key)
        try:
            yield stream
        finally:
            stream.close()
