"""
Main entry point for the S3 wrapper command line.
"""
import json
import os
import shutil
import sys
import time
from pathlib import Path

from loguru import logger

from .exceptions import S3WrapperError
from .models.config import WrapperConfig
from .models.data_models import ChangeEvent
from .services.s3_wrapper import S3Wrapper


def setup_logging(level: str = "INFO"):
    """Configure logging for the wrapper."""
    # Remove default logger
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level
    )

    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    logger.add(
        "logs/s3_wrapper.log",
        rotation="10 MB",
        retention="7 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG"
    )


def _log_new_file(event: ChangeEvent):
    source = "external" if event.external else "local"
    logger.info(f"New file ({source}): {event.file_name}")


def run_watch(wrapper: S3Wrapper):
    """Monitor the bucket and log every new file until interrupted."""
    logger.info(f"Watching bucket {wrapper.bucket} - press Ctrl+C to stop")
    wrapper.on_new_file(_log_new_file)

    with wrapper:
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down gracefully")


def run_put(wrapper: S3Wrapper, key: str, path: str):
    """Upload a local file, as a multipart upload when it spans more than one part."""
    size = os.path.getsize(path)
    if size > wrapper.config.part_size:
        with open(path, 'rb') as source:
            session = wrapper.write_large(key, source)
        logger.info(f"Uploaded {path} to {key} ({size} bytes, {len(session.completed_parts)} parts)")
    else:
        with open(path, 'rb') as source:
            wrapper.write(key, source.read())
        logger.info(f"Uploaded {path} to {key} ({size} bytes)")


def run_get(wrapper: S3Wrapper, key: str, path: str):
    """Stream an object to a local file."""
    with wrapper.read_large(key) as stream, open(path, 'wb') as target:
        shutil.copyfileobj(stream, target)
    logger.info(f"Downloaded {key} to {path}")


def run_status(config: WrapperConfig, wrapper: S3Wrapper) -> bool:
    """Check the connection and show the active configuration."""
    connected = wrapper.s3_manager.test_connection()
    status = {
        'bucket': config.s3.bucket,
        'endpoint': config.s3.endpoint_url or 'default',
        'connected': connected,
        'poll_interval': config.poll_interval,
        'error_backoff': config.error_backoff,
        'part_size': config.part_size
    }
    logger.info(f"Status: {json.dumps(status, indent=2)}")
    return connected


def print_help():
    """Print help information for the CLI."""
    help_text = """
S3 Wrapper - Command Line Interface

USAGE:
    python -m s3_wrapper.main [COMMAND] [OPTIONS]

COMMANDS:
    watch              Monitor the bucket and log new files (default)
    put KEY PATH       Upload a local file (multipart for large files)
    get KEY PATH       Download an object to a local file
    status             Check the connection and show configuration
    help               Show this help message

ENVIRONMENT VARIABLES:
    WRAPPER_S3_ENDPOINT     S3 service host or URL (empty for AWS)
    WRAPPER_S3_ACCESS_KEY   S3 access key
    WRAPPER_S3_SECRET_KEY   S3 secret key
    WRAPPER_S3_BUCKET       Bucket name
    WRAPPER_S3_REGION       Region (default: us-east-1)
    WRAPPER_S3_USE_HTTPS    Use https for host-only endpoints (default: false)
    POLL_INTERVAL           Seconds between bucket listings (default: 5)
    ERROR_BACKOFF           Seconds to wait after a failed listing (default: 30)
    PART_SIZE               Multipart chunk size in bytes (default: 5242880)
    MAX_RETRIES             Attempts per store call (default: 3)
    LOG_LEVEL               Console log level (default: INFO)
"""
    print(help_text)


def main():
    """Main entry point with command line argument handling."""
    args = sys.argv[1:]
    command = args[0].lower() if args else "watch"

    if command in ["help", "--help", "-h"]:
        print_help()
        return

    try:
        config = WrapperConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_level)

    try:
        wrapper = S3Wrapper.from_config(config)

        if command == "watch":
            run_watch(wrapper)
        elif command in ("put", "get"):
            if len(args) != 3:
                logger.error(f"Usage: {command} KEY PATH")
                sys.exit(1)
            if command == "put":
                run_put(wrapper, args[1], args[2])
            else:
                run_get(wrapper, args[1], args[2])
        elif command == "status":
            if not run_status(config, wrapper):
                sys.exit(1)
        else:
            logger.error(f"Unknown command: {command}")
            logger.error("Use 'help' to see available commands")
            print_help()
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully")
        sys.exit(0)
    except S3WrapperError as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
