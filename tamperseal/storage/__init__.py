"""
Blob storage backends.
Each backend stores opaque envelope bytes and hands back a locator.
"""

from tamperseal.storage.base import BlobStorage
from tamperseal.storage.local import LocalDiskStorage
from tamperseal.storage.memory import InMemoryStorage

__all__ = [
    "BlobStorage",
    "LocalDiskStorage",
    "InMemoryStorage",
]
