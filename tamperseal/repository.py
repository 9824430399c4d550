"""
Object repositories.

Persistence for EncryptedObject records, keyed by id with lookups by owner
and by shared principal. Repositories hand out copies: a caller mutates
its copy and calls ``update`` to persist it.
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from tamperseal.errors import NotFoundError, StorageError, ValidationError
from tamperseal.models import EncryptedObject


class ObjectRepository(ABC):
    """Abstract persistence for EncryptedObject records."""

    @abstractmethod
    def create(self, obj: EncryptedObject) -> EncryptedObject:
        """Insert a new record. Raises ValidationError if the id exists."""

    @abstractmethod
    def get(self, object_id: str) -> EncryptedObject | None:
        """Fetch a record by id (soft-deleted included), or None."""

    @abstractmethod
    def update(self, obj: EncryptedObject) -> EncryptedObject:
        """Replace an existing record. Raises NotFoundError if absent."""

    @abstractmethod
    def all(self) -> list[EncryptedObject]:
        """Every record, soft-deleted included."""

    def find_by_owner(self, owner_id: str, include_deleted: bool = False) -> list[EncryptedObject]:
        return [
            obj for obj in self.all()
            if obj.owner_id == owner_id and (include_deleted or not obj.soft_deleted)
        ]

    def find_shared_with(self, principal_id: str, include_deleted: bool = False) -> list[EncryptedObject]:
        return [
            obj for obj in self.all()
            if obj.grant_for(principal_id) is not None
            and (include_deleted or not obj.soft_deleted)
        ]


class InMemoryRepository(ObjectRepository):
    """Dictionary-backed repository."""

    def __init__(self):
        self._objects: dict[str, EncryptedObject] = {}
        self._lock = threading.Lock()

    def create(self, obj: EncryptedObject) -> EncryptedObject:
        with self._lock:
            if obj.id in self._objects:
                raise ValidationError(f"Object {obj.id} already exists")
            self._objects[obj.id] = obj.copy()
        return obj.copy()

    def get(self, object_id: str) -> EncryptedObject | None:
        with self._lock:
            obj = self._objects.get(object_id)
            return obj.copy() if obj is not None else None

    def update(self, obj: EncryptedObject) -> EncryptedObject:
        with self._lock:
            if obj.id not in self._objects:
                raise NotFoundError(f"Object {obj.id} not found")
            self._objects[obj.id] = obj.copy()
        return obj.copy()

    def all(self) -> list[EncryptedObject]:
        with self._lock:
            return [obj.copy() for obj in self._objects.values()]


class JsonDirectoryRepository(ObjectRepository):
    """
    One JSON document per object in a directory.

    Writes go to a temporary file that is then renamed over the target, so
    a crash never leaves a half-written record.

    Args:
        directory: Where records are kept. Created if missing.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, object_id: str) -> Path:
        if not object_id.isalnum():
            raise ValidationError(f"Invalid object id: {object_id!r}")
        return self.directory / f"{object_id}.json"

    def _write(self, obj: EncryptedObject) -> None:
        path = self._path(obj.id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(obj.to_dict(), indent=2))
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write record {obj.id}: {e}") from e

    def _read(self, path: Path) -> EncryptedObject:
        try:
            return EncryptedObject.from_dict(json.loads(path.read_text()))
        except OSError as e:
            raise StorageError(f"Failed to read record {path.name}: {e}") from e

    def create(self, obj: EncryptedObject) -> EncryptedObject:
        with self._lock:
            if self._path(obj.id).exists():
                raise ValidationError(f"Object {obj.id} already exists")
            self._write(obj)
        return obj.copy()

    def get(self, object_id: str) -> EncryptedObject | None:
        try:
            path = self._path(object_id)
        except ValidationError:
            return None
        with self._lock:
            if not path.exists():
                return None
            return self._read(path)

    def update(self, obj: EncryptedObject) -> EncryptedObject:
        with self._lock:
            if not self._path(obj.id).exists():
                raise NotFoundError(f"Object {obj.id} not found")
            self._write(obj)
        return obj.copy()

    def all(self) -> list[EncryptedObject]:
        with self._lock:
            return [self._read(path) for path in sorted(self.directory.glob("*.json"))]
