"""
S3 client manager wrapping the object-store primitives used by the wrapper.
"""
import threading
import time
from typing import Any, BinaryIO, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, EndpointConnectionError
from loguru import logger

from ..exceptions import ObjectNotFoundError
from ..models.config import S3Config
from ..models.data_models import ObjectRecord, as_utc

NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NotFound')


def error_code(error: ClientError) -> str:
    """Return the S3 error code carried by a ClientError."""
    return str(error.response.get('Error', {}).get('Code', ''))


def _is_retryable(error: Exception) -> bool:
    """Client errors (4xx) other than timeouts and throttling will fail again."""
    if isinstance(error, EndpointConnectionError):
        return True
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    code = error_code(error)
    if code in NOT_FOUND_CODES:
        return False
    if status is not None and 400 <= int(status) < 500:
        return int(status) in (408, 429)
    if code.isdigit() and 400 <= int(code) < 500:
        return False
    return code not in ('AccessDenied', 'InvalidPart', 'InvalidPartOrder',
                        'EntityTooSmall', 'NoSuchUpload', 'NoSuchBucket',
                        'MalformedXML', 'InvalidArgument')


def create_s3_client(config: S3Config):
    """Create an S3 client from configuration, using path-style addressing."""
    try:
        client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key or None,
            aws_secret_access_key=config.secret_key or None,
            region_name=config.region or 'us-east-1',
            config=Config(s3={'addressing_style': 'path'})
        )
        logger.debug(f"Created S3 client for endpoint: {config.endpoint_url or 'default'}")
        return client
    except Exception as e:
        logger.error(f"Failed to create S3 client for {config.endpoint_url}: {e}")
        raise


class S3Manager:
    """Manages S3 operations for a single bucket."""

    def __init__(self, config: S3Config, client=None, max_retries: int = 3,
                 backoff_factor: float = 1.0):
        """
        Initialize S3Manager.

        Args:
            config: Connection settings and bucket name
            client: Existing boto3 S3 client; created from config when omitted
            max_retries: Attempts per operation for transient failures
            backoff_factor: Base delay of the exponential backoff, in seconds
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.config = config
        self.bucket = config.bucket
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.client = client if client is not None else create_s3_client(config)

        logger.info(f"S3Manager initialized for bucket: {self.bucket}")

    def _retry_operation(self, operation, max_retries: Optional[int] = None,
                         backoff_factor: Optional[float] = None,
                         stop_event: Optional[threading.Event] = None):
        """
        Execute an operation with exponential backoff retry logic.

        When stop_event is given the backoff waits on it, and the last error
        is raised as soon as it is set.
        """
        max_retries = self.max_retries if max_retries is None else max_retries
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        backoff_factor = self.backoff_factor if backoff_factor is None else backoff_factor

        for attempt in range(max_retries):
            try:
                return operation()
            except (ClientError, EndpointConnectionError) as e:
                if attempt == max_retries - 1 or not _is_retryable(e):
                    raise
                if stop_event is not None and stop_event.is_set():
                    raise

                wait_time = backoff_factor * (2 ** attempt)
                logger.warning(f"Operation failed (attempt {attempt + 1}/{max_retries}), retrying in {wait_time}s: {e}")
                if stop_event is None:
                    time.sleep(wait_time)
                elif stop_event.wait(wait_time):
                    raise

    def list_objects(self, stop_event: Optional[threading.Event] = None) -> List[ObjectRecord]:
        """
        List all objects in the bucket.

        Every page is fetched before returning, so a retry restarts the whole
        listing rather than resuming a half-consumed paginator.

        Args:
            stop_event: Cuts retry backoff short once set

        Returns:
            List[ObjectRecord]: Complete listing of the bucket
        """
        def _list_operation():
            paginator = self.client.get_paginator('list_objects_v2')
            records = []
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get('Contents', []):
                    records.append(ObjectRecord(
                        key=obj['Key'],
                        last_modified=as_utc(obj['LastModified']),
                        size=obj.get('Size', 0),
                        etag=obj.get('ETag', '').strip('"')
                    ))
            return records

        records = self._retry_operation(_list_operation, stop_event=stop_event)
        logger.debug(f"Listed {len(records)} objects in bucket {self.bucket}")
        return records

    def put_object(self, key: str, data: bytes) -> str:
        """
        Store a whole object.

        Returns:
            str: ETag reported by the store
        """
        def _put_operation():
            return self.client.put_object(Bucket=self.bucket, Key=key, Body=data)

        response = self._retry_operation(_put_operation)
        logger.debug(f"Stored {len(data)} bytes at key: {key}")
        return response.get('ETag', '').strip('"')

    def get_object_stream(self, key: str) -> BinaryIO:
        """
        Get an object as a binary stream.

        Args:
            key: Object key in the bucket

        Returns:
            BinaryIO: Stream of the object data

        Raises:
            ObjectNotFoundError: If the key is absent
        """
        def _get_operation():
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response['Body']

        try:
            stream = self._retry_operation(_get_operation)
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                raise ObjectNotFoundError(self.bucket, key) from e
            logger.error(f"Failed to get object stream for key {key}: {e}")
            raise

        logger.debug(f"Retrieved object stream for key: {key}")
        return stream

    def get_object_metadata(self, key: str) -> Dict[str, Any]:
        """
        Get metadata for an object without downloading the content.

        Args:
            key: Object key in the bucket

        Returns:
            Dict containing object metadata
        """
        def _head_operation():
            response = self.client.head_object(Bucket=self.bucket, Key=key)
            return {
                'size': response['ContentLength'],
                'last_modified': response['LastModified'],
                'etag': response['ETag'].strip('"'),
                'content_type': response.get('ContentType', 'binary/octet-stream'),
                'metadata': response.get('Metadata', {})
            }

        return self._retry_operation(_head_operation)

    def object_exists(self, key: str) -> bool:
        """
        Check if an object exists in the bucket.

        Args:
            key: Object key to check

        Returns:
            bool: True if object exists, False otherwise
        """
        try:
            self.get_object_metadata(key)
            return True
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                return False
            raise

    def create_multipart_upload(self, key: str) -> str:
        """Start a multipart upload and return its upload id."""
        def _create_operation():
            return self.client.create_multipart_upload(Bucket=self.bucket, Key=key)

        response = self._retry_operation(_create_operation)
        logger.debug(f"Started multipart upload {response['UploadId']} for key: {key}")
        return response['UploadId']

    def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        """Upload one part and return its ETag."""
        def _part_operation():
            return self.client.upload_part(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data
            )

        response = self._retry_operation(_part_operation)
        return response['ETag'].strip('"')

    def complete_multipart_upload(self, key: str, upload_id: str, parts: List[dict]) -> str:
        """
        Complete a multipart upload.

        Args:
            key: Object key in the bucket
            upload_id: Id returned by create_multipart_upload
            parts: Ordered list of {'PartNumber', 'ETag'} dicts

        Returns:
            str: ETag of the assembled object
        """
        def _complete_operation():
            return self.client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={'Parts': parts}
            )

        response = self._retry_operation(_complete_operation)
        logger.debug(f"Completed multipart upload {upload_id} for key: {key} ({len(parts)} parts)")
        return response.get('ETag', '').strip('"')

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """Abort a multipart upload, discarding its uploaded parts."""
        def _abort_operation():
            return self.client.abort_multipart_upload(
                Bucket=self.bucket, Key=key, UploadId=upload_id
            )

        self._retry_operation(_abort_operation)
        logger.debug(f"Aborted multipart upload {upload_id} for key: {key}")

    def test_connection(self) -> bool:
        """
        Test connection to the S3 service.

        Returns:
            bool: True if connection successful, False otherwise
        """
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info("S3 connection test successful")
            return True
        except Exception as e:
            logger.error(f"S3 connection test failed: {e}")
            return False
