"""Atomic file writing utilities."""

import os
import tempfile
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def atomic_write_bytes(target_path: Path, content: bytes) -> None:
    """Atomically replace a file with the given content.

    The content is written to a temporary file in the target's directory,
    flushed to disk and renamed over the target, so a crash mid-write
    leaves the previous file intact.

    Args:
        target_path: Target file path to write to
        content: Bytes to write

    Raises:
        OSError: If the temporary file cannot be written or renamed
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file_path = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="wb", dir=target_path.parent, prefix=f".{target_path.name}.", suffix=".tmp", delete=False
        ) as temp_file:
            temp_file_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(str(temp_file_path), str(target_path))
        logger.debug("atomic_write_completed", target=str(target_path), bytes=len(content))
    finally:
        if temp_file_path and temp_file_path.exists():
            try:
                temp_file_path.unlink()
            except OSError as cleanup_error:
                logger.warning(
                    "atomic_write_cleanup_failed", temp_file=str(temp_file_path), error=str(cleanup_error)
                )
