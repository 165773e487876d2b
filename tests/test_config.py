"""
Tests for configuration loading.
"""
import pytest

from s3_wrapper.models.config import MIN_PART_SIZE, S3Config, WrapperConfig


class TestS3Config:
    """Test cases for S3Config."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('WRAPPER_S3_ENDPOINT', 'minio:9000')
        monkeypatch.setenv('WRAPPER_S3_ACCESS_KEY', 'minioadmin')
        monkeypatch.setenv('WRAPPER_S3_SECRET_KEY', 'miniosecret')
        monkeypatch.setenv('WRAPPER_S3_BUCKET', 'uploads')
        monkeypatch.setenv('WRAPPER_S3_USE_HTTPS', 'true')
        monkeypatch.delenv('WRAPPER_S3_REGION', raising=False)

        config = S3Config.from_env()

        assert config.endpoint == 'minio:9000'
        assert config.access_key == 'minioadmin'
        assert config.secret_key == 'miniosecret'
        assert config.bucket == 'uploads'
        assert config.region is None
        assert config.use_https is True

    def test_from_env_custom_prefix(self, monkeypatch):
        monkeypatch.setenv('ARCHIVE_S3_BUCKET', 'archive')

        assert S3Config.from_env('ARCHIVE').bucket == 'archive'

    @pytest.mark.parametrize('endpoint, use_https, expected', [
        ('', False, None),
        ('localhost:9000', False, 'http://localhost:9000'),
        ('localhost:9000', True, 'https://localhost:9000'),
        ('http://minio:9000', True, 'http://minio:9000'),
    ])
    def test_endpoint_url(self, endpoint, use_https, expected):
        config = S3Config(endpoint, 'key', 'secret', 'bucket', use_https=use_https)

        assert config.endpoint_url == expected


class TestWrapperConfig:
    """Test cases for WrapperConfig."""

    def test_defaults(self):
        config = WrapperConfig(s3=S3Config('', '', '', 'bucket'))

        assert config.poll_interval == 5.0
        assert config.error_backoff == 30.0
        assert config.part_size == MIN_PART_SIZE == 5242880

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('WRAPPER_S3_BUCKET', 'uploads')
        monkeypatch.setenv('POLL_INTERVAL', '2.5')
        monkeypatch.setenv('ERROR_BACKOFF', '10')
        monkeypatch.setenv('PART_SIZE', str(8 * 1024 * 1024))
        monkeypatch.setenv('MAX_RETRIES', '5')

        config = WrapperConfig.from_env()

        assert config.s3.bucket == 'uploads'
        assert config.poll_interval == 2.5
        assert config.error_backoff == 10.0
        assert config.part_size == 8 * 1024 * 1024
        assert config.max_retries == 5

    def test_part_size_below_minimum(self):
        with pytest.raises(ValueError):
            WrapperConfig(s3=S3Config('', '', '', 'bucket'), part_size=1024)

    def test_non_positive_poll_interval(self):
        with pytest.raises(ValueError):
            WrapperConfig(s3=S3Config('', '', '', 'bucket'), poll_interval=0)

    def test_max_retries_below_one(self):
        """Test a configuration that would never attempt a store call is rejected."""
        with pytest.raises(ValueError):
            WrapperConfig(s3=S3Config('', '', '', 'bucket'), max_retries=0)

    def test_max_retries_zero_from_env(self, monkeypatch):
        monkeypatch.setenv('MAX_RETRIES', '0')

        with pytest.raises(ValueError):
            WrapperConfig.from_env()
