"""
Integrity Verification
Tamper evidence over the stored ciphertext, and the status state machine.

The digest is taken over the envelope exactly as stored (nonce, tag and
ciphertext), once, at upload time. It is never recomputed to match later
bytes.

Status transitions:

    unverified --match----> secure
    unverified --mismatch-> tampered
    secure     --match----> secure
    secure     --mismatch-> tampered
    tampered   --any------> tampered

No transition leaves tampered.

``verify`` (explicit checks) and ``ensure_intact`` (the download path) share
one routine, and every check persists its outcome.
"""

import hashlib
import hmac
import logging

from tamperseal.audit import AuditAction, AuditEvent, AuditRecorder, RequestContext
from tamperseal.errors import IntegrityError
from tamperseal.models import EncryptedObject, ObjectStatus, utcnow
from tamperseal.repository import ObjectRepository
from tamperseal.storage.base import BlobStorage


logger = logging.getLogger(__name__)

__all__ = ["ObjectStatus", "compute_digest", "next_status", "IntegrityVerifier"]


def compute_digest(data: bytes) -> str:
    """SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def next_status(current: ObjectStatus, matched: bool) -> ObjectStatus:
    """Apply one verification outcome to a status."""
    if current is ObjectStatus.TAMPERED:
        return ObjectStatus.TAMPERED
    return ObjectStatus.SECURE if matched else ObjectStatus.TAMPERED


class IntegrityVerifier:
    """
    Recomputes ciphertext digests and records the result.

    Args:
        storage: Where envelopes live.
        repository: Where status transitions are persisted.
        audit: Receives a ``verify`` or ``tamper`` event per check.
    """

    def __init__(self, storage: BlobStorage, repository: ObjectRepository, audit: AuditRecorder):
        self.storage = storage
        self.repository = repository
        self.audit = audit

    def verify(
        self,
        obj: EncryptedObject,
        actor_id: str,
        context: RequestContext = None,
    ) -> bool:
        """
        Check an object's stored bytes against its creation-time digest.

        Updates ``obj`` in place and persists it.

        Returns:
            True if the digest matched.

        Raises:
            StorageError: If the envelope cannot be read.
        """
        matched, _ = self._check(obj, actor_id, context)
        return matched

    def ensure_intact(
        self,
        obj: EncryptedObject,
        actor_id: str,
        context: RequestContext = None,
    ) -> bytes:
        """
        Verify, then return the verified envelope bytes.

        Raises:
            IntegrityError: On digest mismatch (status already persisted).
            StorageError: If the envelope cannot be read.
        """
        matched, envelope = self._check(obj, actor_id, context)
        if not matched:
            raise IntegrityError(f"Object {obj.id} failed integrity verification")
        return envelope

    def _check(self, obj, actor_id, context):
        envelope = self.storage.get(obj.storage_locator)
        actual = compute_digest(envelope)
        matched = hmac.compare_digest(actual, obj.integrity_digest)

        previous = obj.status
        obj.status = next_status(previous, matched)
        obj.verified_at = utcnow()
        self.repository.update(obj)

        if matched:
            logger.info("Object %s verified (%s -> %s)", obj.id, previous.value, obj.status.value)
        else:
            logger.warning(
                "Tampering detected on object %s (%s -> %s)",
                obj.id, previous.value, obj.status.value,
            )

        self.audit.append(AuditEvent.build(
            object_id=obj.id,
            action=AuditAction.VERIFY if matched else AuditAction.TAMPER,
            actor_id=actor_id,
            metadata={
                "expected_digest": obj.integrity_digest,
                "actual_digest": actual,
                "previous_status": previous.value,
                "status": obj.status.value,
            },
            context=context,
        ))
        return matched, envelope
