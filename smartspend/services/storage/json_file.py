"""
JSON File Storage Implementation

DESIGN DECISION: A directory of small files is used as the local backend because:
1. Users can open and back up their data with any text editor
2. No database setup required
3. One file per key mirrors the browser storage the ledger was designed for

TRADEOFFS:
- Not suitable for concurrent writers (the ledger is single-writer)
- Whole-document rewrites on every commit (fine for personal data)

Writes go to a temp file in the same directory and are moved into place
with os.replace, so a crash mid-write leaves the previous value intact.
Transient OS errors (locked files, full disks being cleaned up) are retried.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from smartspend.config import get_settings
from smartspend.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(KeyValueStoreInterface):
    """
    File-backed key-value store.

    Each key is kept in `<data_dir>/<key>.json`.
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        write_attempts: Optional[int] = None,
        wait_multiplier: float = 0.1,
    ):
        settings = get_settings().store
        self._data_dir = Path(data_dir) if data_dir is not None else settings.data_path
        self._write_attempts = write_attempts or settings.write_attempts
        self._wait_multiplier = wait_multiplier

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid store key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        """Read a key's file; a missing file means the key was never set."""
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def set(self, key: str, value: str) -> None:
        """Atomically replace a key's file, retrying transient failures."""
        path = self._path_for(key)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_attempts),
                wait=wait_exponential(multiplier=self._wait_multiplier, min=0, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._write_atomic(path, value)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    def remove(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

    def move(self, key: str, new_key: str) -> bool:
        """Rename a key's file without reading it."""
        path = self._path_for(key)
        target = self._path_for(new_key)
        try:
            os.replace(path, target)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to move {path} to {target}: {e}")

    def _write_atomic(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}-",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
