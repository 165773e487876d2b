"""
Pytest configuration and fixtures for the S3 wrapper tests.
"""
import os
import time

import boto3
import pytest
from moto import mock_aws

from s3_wrapper.models.config import S3Config, WrapperConfig
from s3_wrapper.services.s3_wrapper import S3Wrapper

TEST_BUCKET = 'test-bucket'


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables for all tests."""
    test_env = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1',
    }

    for key, value in test_env.items():
        os.environ[key] = value

    yield


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def s3_config():
    """S3 configuration pointing at the default (mocked) AWS endpoint."""
    return S3Config(
        endpoint='',
        access_key='testing',
        secret_key='testing',
        bucket=TEST_BUCKET,
        region='us-east-1'
    )


@pytest.fixture
def wrapper_config(s3_config):
    """Wrapper configuration with fast polling for tests."""
    return WrapperConfig(
        s3=s3_config,
        poll_interval=0.1,
        error_backoff=0.1,
        max_retries=1
    )


@pytest.fixture
def s3_client():
    """In-process S3 with an empty test bucket."""
    with mock_aws():
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def wrapper(s3_client, wrapper_config):
    """S3Wrapper on the mocked bucket, with monitoring stopped on teardown."""
    s3_wrapper = S3Wrapper.from_config(wrapper_config)
    yield s3_wrapper
    s3_wrapper.stop_monitoring()


@pytest.fixture
def received():
    """List that collects events, with a callback that appends to it."""
    events = []

    def collect(event):
        events.append(event)

    collect.events = events
    return collect
