"""
Local disk storage.
One file per blob under a root directory, named with a random filename.
"""

import logging
from pathlib import Path

from tamperseal.envelope import secure_filename
from tamperseal.errors import StorageError
from tamperseal.storage.base import BlobStorage


logger = logging.getLogger(__name__)


class LocalDiskStorage(BlobStorage):
    """
    Stores envelopes as files in ``root``.

    Locators are bare file names, never paths, so a locator read back from
    persistence cannot point outside the root directory.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, locator: str) -> Path:
        if not locator or Path(locator).name != locator or locator in (".", ".."):
            raise StorageError(f"Invalid locator: {locator!r}")
        return self.root / locator

    def put(self, data: bytes, name_hint: str = "") -> str:
        locator = secure_filename(name_hint)
        path = self._path(locator)
        try:
            # "xb" refuses to overwrite an existing blob
            with open(path, "xb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write blob {locator}: {e}") from e
        logger.debug("Stored %d bytes at %s", len(data), path)
        return locator

    def get(self, locator: str) -> bytes:
        path = self._path(locator)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read blob {locator}: {e}") from e

    def delete(self, locator: str) -> None:
        path = self._path(locator)
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete blob {locator}: {e}") from e

    def exists(self, locator: str) -> bool:
        try:
            return self._path(locator).is_file()
        except StorageError:
            return False
