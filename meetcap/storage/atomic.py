"""Atomic JSON document writes.

Documents are written to a temporary file beside the destination and then
renamed over it, so readers only ever see the previous or the new complete
document. Writes to the same path run one at a time in call order.
"""

import asyncio
import errno
import json
import os
import shutil
import uuid
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

# Windows and some network filesystems refuse a replace while a reader
# holds the destination open.
RETRIABLE_EXCEPTIONS = (PermissionError,)


@retry(
    stop=stop_after_attempt(4),
    wait=wait_exponential(multiplier=0.05, max=1),
    retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, log_level=20),
    reraise=True,
)
def _replace(tmp: Path, destination: Path) -> None:
    try:
        os.replace(tmp, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        # Temp file landed on another filesystem: copy, then drop it.
        shutil.copyfile(tmp, destination)
        tmp.unlink()


def write_text_atomic(destination: Path, text: str) -> None:
    """Write text to destination through a temp file and rename.

    Raises:
        OSError: The document could not be written; destination is untouched
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    tmp = destination.with_name(f"{destination.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        _replace(tmp, destination)
    finally:
        if tmp.exists():
            tmp.unlink()


class AtomicJsonWriter:
    """Serialized, atomic JSON writes keyed by destination path.

    The document is serialized when write() is called, so later changes to
    the in-memory object cannot leak into an earlier queued write.
    """

    def __init__(self) -> None:
        self._locks: dict[Path, asyncio.Lock] = {}

    def _lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = asyncio.Lock()
        return lock

    def write(self, path: Path, document: Any) -> Coroutine[Any, Any, None]:
        """Serialize document now and return the write to await.

        Args:
            path: Destination file
            document: JSON-serializable object

        Returns:
            Coroutine performing the locked, atomic write

        Raises:
            TypeError: document is not JSON-serializable
        """
        text = json.dumps(document, indent=2, ensure_ascii=False)
        return self._write(Path(path), text)

    async def _write(self, path: Path, text: str) -> None:
        """Raises OSError when the write failed after retries."""
        async with self._lock_for(path):
            await asyncio.to_thread(write_text_atomic, path, text)
