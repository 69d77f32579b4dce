"""
Atomic Write Operations
=======================

Implements atomic file writes so the configuration file is never left
half-written.

Pattern:
1. Write to a temporary sibling {name}.{pid}.tmp
2. Flush and sync to disk
3. Atomic rename to the final path

The file on disk is either the old version or the complete new version.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger("webgate.storage.atomic")


def atomic_write(
    path: Path | str,
    content: str | bytes,
    encoding: str = "utf-8",
    sync: bool = True,
) -> None:
    """
    Write content to a file atomically.

    Args:
        path: Target file path
        content: Content to write (string or bytes)
        encoding: Encoding for string content
        sync: Whether to fsync before the rename

    Raises:
        OSError: if the temporary file cannot be written or renamed
    """
    path = Path(path)
    tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    data = content if isinstance(content, bytes) else content.encode(encoding)

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(os.fspath(tmp_path), "wb") as f:
            f.write(data)
            if sync:
                f.flush()
                os.fsync(f.fileno())

        tmp_path.replace(path)
    except OSError as e:
        logger.error(f"Atomic write failed for {path}: {e}")
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError as cleanup_error:
                logger.debug(f"Could not remove {tmp_path}: {cleanup_error}")
        raise


def atomic_write_json(path: Path | str, data: Any, indent: int = 2) -> None:
    """Serialize ``data`` as JSON (with a trailing newline) and write it atomically."""
    atomic_write(path, json.dumps(data, indent=indent, ensure_ascii=False) + "\n")


__all__ = ["atomic_write", "atomic_write_json"]
