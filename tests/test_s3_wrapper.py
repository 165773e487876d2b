"""
Integration tests for S3Wrapper against an in-process S3 (moto).
"""
import io
import math
import os
import threading
import time
from dataclasses import dataclass

import pytest

from s3_wrapper.exceptions import ObjectDecodeError, ObjectExistsError, ObjectNotFoundError
from s3_wrapper.models.config import MIN_PART_SIZE

from .conftest import TEST_BUCKET, wait_for


@dataclass
class TestObject:
    __test__ = False

    Name: str
    Value: int


def key_count(received, key):
    return sum(1 for event in received.events if event.file_name == key)


class TestReadWrite:
    """Whole-object and typed reads and writes."""

    def test_write_and_read_binary_data(self, wrapper):
        """Test bytes round trip."""
        expected = bytes([1, 2, 3, 4])

        wrapper.write('test.bin', expected)

        assert wrapper.read('test.bin') == expected

    def test_write_and_read_empty_object(self, wrapper):
        wrapper.write('empty.bin', b'')

        assert wrapper.read('empty.bin') == b''

    def test_write_and_read_object(self, wrapper):
        """Test typed round trip through JSON."""
        wrapper.write_object('test.json', TestObject(Name='Test', Value=42))

        actual = wrapper.read_object('test.json', TestObject)

        assert actual.Name == 'Test'
        assert actual.Value == 42
        assert wrapper.read_object('test.json') == {'Name': 'Test', 'Value': 42}

    def test_write_to_existing_file_fails(self, wrapper):
        """Test whole-object writes are write-once and keep the first content."""
        wrapper.write('existing-file.txt', b'first')

        with pytest.raises(ObjectExistsError) as exc_info:
            wrapper.write('existing-file.txt', b'second')

        assert 'existing-file.txt' in str(exc_info.value)
        assert TEST_BUCKET in str(exc_info.value)
        assert wrapper.read('existing-file.txt') == b'first'

    def test_read_missing_object(self, wrapper):
        with pytest.raises(ObjectNotFoundError):
            wrapper.read('missing.bin')

        with pytest.raises(ObjectNotFoundError):
            with wrapper.read_large('missing.bin'):
                pass

    def test_read_object_malformed(self, wrapper):
        wrapper.write('bad.json', b'{not json')

        with pytest.raises(ObjectDecodeError):
            wrapper.read_object('bad.json')


class TestLargeFiles:
    """Multipart upload and streamed download."""

    def test_write_and_read_large_file(self, wrapper):
        """Test a 10 MiB random buffer survives a multipart round trip."""
        expected = os.urandom(10 * 1024 * 1024)

        session = wrapper.write_large('large-file.bin', io.BytesIO(expected))

        with wrapper.read_large('large-file.bin') as stream:
            actual = stream.read()

        assert actual == expected
        assert len(session.completed_parts) == math.ceil(len(expected) / MIN_PART_SIZE)
        assert [number for number, _ in session.completed_parts] == [1, 2]

    def test_write_large_with_small_final_part(self, wrapper):
        expected = os.urandom(MIN_PART_SIZE + 1234)

        session = wrapper.write_large('uneven.bin', io.BytesIO(expected))

        assert len(session.completed_parts) == 2
        assert wrapper.read('uneven.bin') == expected

    def test_failed_part_leaves_no_pending_upload(self, wrapper, s3_client):
        """Test a failing stream aborts the upload in the store."""
        class BrokenStream(io.BytesIO):
            def read(self, size=-1):
                if self.tell() >= MIN_PART_SIZE:
                    raise OSError('source went away')
                return super().read(size)

        with pytest.raises(Exception):
            wrapper.write_large('broken.bin', BrokenStream(os.urandom(MIN_PART_SIZE * 2)))

        uploads = s3_client.list_multipart_uploads(Bucket=TEST_BUCKET)
        assert uploads.get('Uploads', []) == []
        with pytest.raises(ObjectNotFoundError):
            wrapper.read('broken.bin')


class TestNotifications:
    """Events from writes and from external changes."""

    def test_write_notifies_once(self, wrapper, received):
        """Test own writes are seen exactly once even while the bucket is polled."""
        wrapper.on_new_file(received)
        wrapper.start_monitoring()

        wrapper.write('test.bin', b'\x01\x02')
        wrapper.write_large('large.bin', io.BytesIO(os.urandom(MIN_PART_SIZE + 10)))

        assert wait_for(lambda: key_count(received, 'large.bin') == 1)
        # let a few polls run over the written objects
        time.sleep(0.5)
        wrapper.stop_monitoring()

        assert key_count(received, 'test.bin') == 1
        assert key_count(received, 'large.bin') == 1
        assert not any(event.external for event in received.events)

    def test_monitor_external_changes(self, wrapper, s3_client, received):
        """Test an object put by another client is reported within the poll window."""
        detected = threading.Event()

        def on_file(event):
            received(event)
            if event.file_name == 'external-file.txt':
                detected.set()

        wrapper.on_new_file(on_file)
        wrapper.start_monitoring()

        s3_client.put_object(Bucket=TEST_BUCKET, Key='external-file.txt', Body=bytes([5, 6, 7, 8]))

        assert detected.wait(timeout=6)
        assert received.events[-1].external is True

    def test_remove_listener(self, wrapper, received):
        handle = wrapper.on_new_file(received)

        assert wrapper.remove_listener(handle) is True

        with wrapper:
            wrapper.write('quiet.bin', b'data')

        assert received.events == []

    def test_context_manager_starts_and_stops(self, wrapper, received):
        wrapper.on_new_file(received)

        with wrapper:
            assert wrapper.monitor.is_running
            wrapper.write('ctx.bin', b'data')

        assert not wrapper.monitor.is_running
        assert [event.file_name for event in received.events] == ['ctx.bin']

    def test_start_and_stop_are_idempotent(self, wrapper):
        wrapper.stop_monitoring()

        wrapper.start_monitoring()
        wrapper.start_monitoring()
        wrapper.stop_monitoring()
        wrapper.stop_monitoring()

        assert not wrapper.monitor.is_running
