"""
Base class for all blob storage backends.
Every backend implements this interface.
"""

from abc import ABC, abstractmethod


class BlobStorage(ABC):
    """
    Abstract durable store for ciphertext blobs.

    Blobs are write-once: ``put`` always creates a new locator and nothing
    in this package rewrites an existing one. Backend failures must be
    raised as StorageError.
    """

    @abstractmethod
    def put(self, data: bytes, name_hint: str = "") -> str:
        """
        Store a blob.

        Args:
            data: Envelope bytes.
            name_hint: Original file name; backends may keep its extension.

        Returns:
            Opaque locator for later ``get``/``delete``.
        """

    @abstractmethod
    def get(self, locator: str) -> bytes:
        """Read a blob. Raises StorageError if missing or unreadable."""

    @abstractmethod
    def delete(self, locator: str) -> None:
        """Remove a blob. Raises StorageError on failure."""

    @abstractmethod
    def exists(self, locator: str) -> bool:
        """Check whether a blob is present."""
