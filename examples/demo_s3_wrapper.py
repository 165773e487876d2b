#!/usr/bin/env python3
"""
Simple demo of the S3 wrapper against a local MinIO.

This script demonstrates:
- Wrapper initialization from environment
- Byte, JSON and multipart writes with their notifications
- Detection of an object written by another client
"""
import io
import os
import sys
import time
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from s3_wrapper.models.config import WrapperConfig
from s3_wrapper.services.s3_wrapper import S3Wrapper
from loguru import logger


def setup_demo_environment():
    """Configure environment for demo."""
    os.environ.setdefault('WRAPPER_S3_ENDPOINT', 'localhost:9000')
    os.environ.setdefault('WRAPPER_S3_ACCESS_KEY', 'minioadmin')
    os.environ.setdefault('WRAPPER_S3_SECRET_KEY', 'minioadmin')
    os.environ.setdefault('WRAPPER_S3_BUCKET', 'test-bucket')
    os.environ.setdefault('WRAPPER_S3_REGION', 'us-east-1')
    os.environ.setdefault('POLL_INTERVAL', '2')


def main():
    """Run S3 wrapper demo."""
    logger.remove()
    logger.add(sys.stderr, format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> - <level>{message}</level>", level="INFO")

    logger.info("🚀 S3 Wrapper Demo")

    try:
        setup_demo_environment()
        config = WrapperConfig.from_env()
        wrapper = S3Wrapper.from_config(config)

        if not wrapper.s3_manager.test_connection():
            logger.error(f"❌ Bucket {config.s3.bucket} is not reachable")
            return 1

        run_id = int(time.time())
        wrapper.on_new_file(lambda event: logger.info(
            f"📣 New file: {event.file_name} ({'external' if event.external else 'local'})"
        ))

        with wrapper:
            wrapper.write(f"demo/{run_id}/hello.txt", b"hello from the wrapper")
            wrapper.write_object(f"demo/{run_id}/reading.json", {"Name": "Test", "Value": 42})

            payload = os.urandom(12 * 1024 * 1024)
            session = wrapper.write_large(f"demo/{run_id}/large.bin", io.BytesIO(payload))
            logger.info(f"Multipart upload used {len(session.completed_parts)} parts")

            # Simulate a write from another process
            wrapper.s3_manager.client.put_object(
                Bucket=config.s3.bucket, Key=f"demo/{run_id}/external.txt", Body=b"external"
            )
            logger.info("Waiting for the monitor to pick up the external write...")
            time.sleep(config.poll_interval * 2)

        value = wrapper.read_object(f"demo/{run_id}/reading.json")
        logger.success(f"✅ Read back: {value}")

    except Exception as e:
        logger.error(f"❌ Demo failed: {str(e)}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
