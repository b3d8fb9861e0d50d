"""File helpers."""

import os
from pathlib import Path

import structlog

logger = structlog.get_logger()


def atomic_write(path: Path, content: str) -> None:
    """
    Atomically write content to file with temp-file-rename pattern.

    1. Write to a temporary file in the same directory
    2. fsync to ensure data is on disk
    3. Rename over the target (atomic on POSIX)

    Raises:
        OSError: On file I/O errors
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".{path.name}.tmp.{os.getpid()}"

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)

        logger.debug("atomic_write_success", path=str(path), size=len(content))

    except Exception as e:
        if temp_path.exists():
            temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise
