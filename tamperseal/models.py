"""
Data model for protected objects.

Plain dataclasses; persistence is a repository concern. ``to_dict`` /
``from_dict`` give a JSON-safe representation (timestamps as ISO-8601).
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


class ObjectStatus(Enum):
    """Integrity status of a stored object."""
    UNVERIFIED = "unverified"
    SECURE = "secure"
    TAMPERED = "tampered"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_object_id() -> str:
    """Opaque, unguessable object id."""
    return uuid.uuid4().hex


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class Principal:
    """An identity that can own, be granted, or act on objects."""
    id: str
    username: str = ""
    email: str = ""


@dataclass
class Watermark:
    """Provenance record stored alongside the object (and embedded inside it)."""
    owner_id: str
    username: str
    created_at: datetime
    embedded: bool = False

    def embedded_record(self) -> dict:
        """The record that travels inside the encrypted frame."""
        return {
            "ownerId": self.owner_id,
            "username": self.username,
            "timestamp": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "username": self.username,
            "created_at": _iso(self.created_at),
            "embedded": self.embedded,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Watermark":
        return cls(
            owner_id=data["owner_id"],
            username=data.get("username", ""),
            created_at=_parse(data["created_at"]),
            embedded=data.get("embedded", False),
        )


@dataclass
class ShareGrant:
    """Read-only access granted to one principal."""
    principal_id: str
    granted_at: datetime = field(default_factory=utcnow)
    permission: str = "read"

    def to_dict(self) -> dict:
        return {
            "principal_id": self.principal_id,
            "granted_at": _iso(self.granted_at),
            "permission": self.permission,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShareGrant":
        return cls(
            principal_id=data["principal_id"],
            granted_at=_parse(data["granted_at"]),
            permission=data.get("permission", "read"),
        )


@dataclass
class EncryptedObject:
    """
    One protected item.

    ``owner_id`` and ``integrity_digest`` are fixed at creation. The bytes
    behind ``storage_locator`` are never rewritten by this package.
    """
    id: str
    owner_id: str
    storage_locator: str
    size_original: int
    mime_type: str
    original_name: str
    integrity_digest: str
    watermark: Watermark
    status: ObjectStatus = ObjectStatus.UNVERIFIED
    shared_with: list[ShareGrant] = field(default_factory=list)
    uploaded_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None
    verified_at: datetime | None = None
    soft_deleted: bool = False
    deleted_at: datetime | None = None

    def grant_for(self, principal_id: str) -> ShareGrant | None:
        for grant in self.shared_with:
            if grant.principal_id == principal_id:
                return grant
        return None

    def is_expired(self, now: datetime = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utcnow())

    def add_grant(self, principal_id: str) -> bool:
        """Grant read access. Returns False if already granted."""
        if self.grant_for(principal_id) is not None:
            return False
        self.shared_with.append(ShareGrant(principal_id=principal_id))
        return True

    def remove_grant(self, principal_id: str) -> bool:
        """Revoke read access. Returns False if there was no grant."""
        before = len(self.shared_with)
        self.shared_with = [g for g in self.shared_with if g.principal_id != principal_id]
        return len(self.shared_with) != before

    def copy(self) -> "EncryptedObject":
        return replace(
            self,
            watermark=replace(self.watermark),
            shared_with=[replace(g) for g in self.shared_with],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "storage_locator": self.storage_locator,
            "size_original": self.size_original,
            "mime_type": self.mime_type,
            "original_name": self.original_name,
            "integrity_digest": self.integrity_digest,
            "watermark": self.watermark.to_dict(),
            "status": self.status.value,
            "shared_with": [g.to_dict() for g in self.shared_with],
            "uploaded_at": _iso(self.uploaded_at),
            "expires_at": _iso(self.expires_at),
            "verified_at": _iso(self.verified_at),
            "soft_deleted": self.soft_deleted,
            "deleted_at": _iso(self.deleted_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EncryptedObject":
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            storage_locator=data["storage_locator"],
            size_original=data["size_original"],
            mime_type=data["mime_type"],
            original_name=data["original_name"],
            integrity_digest=data["integrity_digest"],
            watermark=Watermark.from_dict(data["watermark"]),
            status=ObjectStatus(data["status"]),
            shared_with=[ShareGrant.from_dict(g) for g in data.get("shared_with", [])],
            uploaded_at=_parse(data.get("uploaded_at")),
            expires_at=_parse(data.get("expires_at")),
            verified_at=_parse(data.get("verified_at")),
            soft_deleted=data.get("soft_deleted", False),
            deleted_at=_parse(data.get("deleted_at")),
        )
