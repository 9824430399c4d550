"""
Access Control Gate
Decides whether a principal may act on an object, before anything happens.

Checks return a Decision instead of raising, so a caller composes them
and converts a denial into an exception in one place. No check mutates
state or touches content bytes.
"""

from dataclasses import dataclass
from datetime import datetime

from tamperseal.errors import (
    AuthorizationError,
    NotFoundError,
    TamperBlockedError,
    TamperSealError,
)
from tamperseal.models import EncryptedObject, ObjectStatus


@dataclass(frozen=True)
class Decision:
    """Outcome of an access check."""
    allowed: bool
    error: type[TamperSealError] | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def kind(self) -> str | None:
        return self.error.kind if self.error else None

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise self.error(self.reason)


ALLOW = Decision(allowed=True)


def deny(error: type[TamperSealError], reason: str) -> Decision:
    return Decision(allowed=False, error=error, reason=reason)


class AccessControlGate:
    """Ownership, sharing and tamper-state authorization rules."""

    @staticmethod
    def is_owner(obj: EncryptedObject, principal_id: str) -> bool:
        return obj.owner_id == principal_id

    @staticmethod
    def has_read_access(obj: EncryptedObject, principal_id: str, now: datetime = None) -> bool:
        """Owner or grantee of a live, unexpired object."""
        if obj.soft_deleted or obj.is_expired(now):
            return False
        if obj.owner_id == principal_id:
            return True
        return obj.grant_for(principal_id) is not None

    @staticmethod
    def can_share(obj: EncryptedObject) -> bool:
        return obj.status is not ObjectStatus.TAMPERED

    def check_exists(self, obj: EncryptedObject | None, object_id: str) -> Decision:
        if obj is None:
            return deny(NotFoundError, f"Object {object_id} not found")
        if obj.soft_deleted:
            return deny(NotFoundError, f"Object {object_id} has been deleted")
        return ALLOW

    def check_read(self, obj: EncryptedObject | None, object_id: str, principal_id: str,
                   now: datetime = None) -> Decision:
        found = self.check_exists(obj, object_id)
        if not found:
            return found
        if obj.is_expired(now):
            return deny(AuthorizationError, f"Object {object_id} has expired")
        if not self.has_read_access(obj, principal_id, now):
            return deny(AuthorizationError, "You do not have permission to access this object")
        return ALLOW

    def check_owner(self, obj: EncryptedObject | None, object_id: str, principal_id: str,
                    allow_deleted: bool = False) -> Decision:
        """Owner-only actions. ``allow_deleted`` admits soft-deleted objects (audit review)."""
        if obj is None:
            return deny(NotFoundError, f"Object {object_id} not found")
        if obj.soft_deleted and not allow_deleted:
            return deny(NotFoundError, f"Object {object_id} has been deleted")
        if not self.is_owner(obj, principal_id):
            return deny(AuthorizationError, "Only the owner can perform this action")
        return ALLOW

    def check_share(self, obj: EncryptedObject | None, object_id: str, principal_id: str,
                    target_id: str) -> Decision:
        """
        Owner check, then self-share, then tamper state.

        Self-share is rejected whatever the status. A tampered object
        yields TamperBlockedError, not a generic AuthorizationError.
        """
        owner = self.check_owner(obj, object_id, principal_id)
        if not owner:
            return owner
        if target_id == obj.owner_id:
            return deny(AuthorizationError, "Cannot share an object with its owner")
        if not self.can_share(obj):
            return deny(
                TamperBlockedError,
                f"Object {object_id} failed integrity verification; sharing is blocked",
            )
        return ALLOW
