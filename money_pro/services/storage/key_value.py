"""
Key-Value Store Implementations

DESIGN DECISION: Each key is one file in a data directory.
A write always replaces the whole file: the new blob goes to a temporary file
in the same directory and is moved over the old one with os.replace, so a
reader sees either the previous blob or the new one, never a partial write.

TRADEOFFS:
- Every change rewrites the whole collection (fine for a personal ledger)
- No locking (single-user, single-process use)
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from money_pro.services.storage.interface import (
    InvalidKeyError,
    KeyValueStoreInterface,
    StorageError,
)


KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
BLOB_SUFFIX = ".blob"

logger = structlog.get_logger(__name__)


def validate_key(key: str) -> str:
    """Reject keys that cannot safely become file names."""
    if not isinstance(key, str) or not KEY_PATTERN.match(key) or key in {".", ".."}:
        raise InvalidKeyError(f"Invalid storage key: {key!r}")
    return key


class FileKeyValueStore(KeyValueStoreInterface):
    """
    Directory-backed key-value store.

    Layout: <root>/<key>.blob, one file per key.
    """

    def __init__(self, root: Path, write_attempts: int = 3):
        self._root = Path(root).expanduser()
        self._write_attempts = write_attempts
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._root}: {e}") from e

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        return self._root / f"{validate_key(key)}{BLOB_SUFFIX}"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read key '{key}': {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._write_atomic(path, value)
        except OSError as e:
            raise StorageError(f"Failed to write key '{key}': {e}") from e

        logger.debug("blob_written", key=key, size=len(value))

    def _write_atomic(self, path: Path, value: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.stem}.",
            suffix=".tmp",
            dir=self._root,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete key '{key}': {e}") from e
        return True

    def keys(self) -> list[str]:
        return sorted(
            p.name[: -len(BLOB_SUFFIX)]
            for p in self._root.glob(f"*{BLOB_SUFFIX}")
            if p.is_file()
        )


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._data: dict[str, bytes] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(validate_key(key))

    def set(self, key: str, value: bytes) -> None:
        self._data[validate_key(key)] = bytes(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(validate_key(key), None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)
