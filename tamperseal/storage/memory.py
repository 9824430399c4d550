"""
In-memory storage.
For tests and single-process tooling; contents vanish with the process.
"""

import threading

from tamperseal.envelope import secure_filename
from tamperseal.errors import StorageError
from tamperseal.storage.base import BlobStorage


class InMemoryStorage(BlobStorage):
    """Dictionary-backed blob store."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, name_hint: str = "") -> str:
        locator = secure_filename(name_hint)
        with self._lock:
            self._blobs[locator] = bytes(data)
        return locator

    def get(self, locator: str) -> bytes:
        with self._lock:
            try:
                return self._blobs[locator]
            except KeyError:
                raise StorageError(f"No blob at {locator}") from None

    def delete(self, locator: str) -> None:
        with self._lock:
            if self._blobs.pop(locator, None) is None:
                raise StorageError(f"No blob at {locator}")

    def exists(self, locator: str) -> bool:
        with self._lock:
            return locator in self._blobs

    def overwrite(self, locator: str, data: bytes) -> None:
        """
        Replace a blob's bytes in place.

        Simulates out-of-band modification of durable storage; the package
        itself never calls this.
        """
        with self._lock:
            if locator not in self._blobs:
                raise StorageError(f"No blob at {locator}")
            self._blobs[locator] = bytes(data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
