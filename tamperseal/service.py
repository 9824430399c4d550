"""
Protection Service
Wires the codec, watermark framing, integrity checks, access gate and
audit trail into the operations callers actually use.

Flow for upload:
1. Validate the content
2. Embed the owner's watermark in the plaintext
3. Encrypt the frame
4. Store the envelope and record its digest (status: unverified)
5. Audit

Flow for download:
1. Access check (owner or grantee, live, unexpired)
2. Integrity check over the stored envelope (status persisted)
3. Decrypt and split off the watermark
4. Audit

Operations on the same object id are serialized; every mutator re-reads
the record under the object's lock, so a status flip to tampered cannot
be overwritten by a concurrent stale write.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from tamperseal.access import AccessControlGate
from tamperseal.audit import (
    AuditAction,
    AuditEvent,
    AuditRecorder,
    InMemoryAuditRecorder,
    JsonLinesAuditRecorder,
    RequestContext,
)
from tamperseal.config import Config, DEFAULT_MAX_FILE_SIZE
from tamperseal.envelope import EnvelopeCodec
from tamperseal.errors import (
    NotFoundError,
    StorageError,
    TamperBlockedError,
    TamperSealError,
    ValidationError,
)
from tamperseal.identity import InMemoryDirectory, PrincipalDirectory
from tamperseal.integrity import IntegrityVerifier, compute_digest
from tamperseal.locks import KeyedLocks
from tamperseal.models import (
    EncryptedObject,
    Principal,
    Watermark,
    new_object_id,
    utcnow,
)
from tamperseal.repository import InMemoryRepository, ObjectRepository
from tamperseal.storage.base import BlobStorage
from tamperseal.storage.local import LocalDiskStorage
from tamperseal import watermark as framing


logger = logging.getLogger(__name__)


@dataclass
class Download:
    """Decrypted content plus the watermark recovered from inside it."""
    content: bytes
    watermark: dict | None
    object: EncryptedObject


@dataclass
class Listing:
    owned: list[EncryptedObject]
    shared: list[EncryptedObject]


@dataclass
class Outcome:
    """Tagged success/failure for callers that prefer values to exceptions."""
    ok: bool
    value: object = None
    error_kind: str | None = None
    message: str = ""


class ProtectionService:
    """
    The content-protection pipeline.

    Args:
        codec: Envelope codec holding the process key.
        storage: Blob storage for envelopes.
        repository: Object record persistence.
        directory: Principal lookup for share targets.
        audit: Audit sink.
        max_file_size: Upload size limit in bytes.
    """

    def __init__(
        self,
        codec: EnvelopeCodec,
        storage: BlobStorage,
        repository: ObjectRepository,
        directory: PrincipalDirectory,
        audit: AuditRecorder,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        self.codec = codec
        self.storage = storage
        self.repository = repository
        self.directory = directory
        self.audit = audit
        self.max_file_size = max_file_size
        self.gate = AccessControlGate()
        self.verifier = IntegrityVerifier(storage, repository, audit)
        self._locks = KeyedLocks()

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: BlobStorage = None,
        repository: ObjectRepository = None,
        directory: PrincipalDirectory = None,
        audit: AuditRecorder = None,
    ) -> "ProtectionService":
        """Build a service from configuration, filling unspecified collaborators."""
        if audit is None:
            if config.audit_log_path is not None:
                audit = JsonLinesAuditRecorder(config.audit_log_path)
            else:
                audit = InMemoryAuditRecorder()

        return cls(
            codec=EnvelopeCodec.from_config(config),
            storage=storage if storage is not None else LocalDiskStorage(config.upload_dir),
            repository=repository if repository is not None else InMemoryRepository(),
            directory=directory if directory is not None else InMemoryDirectory(),
            audit=audit,
            max_file_size=config.max_file_size,
        )

    def _record(self, object_id, action, actor_id, target=None, metadata=None, context=None):
        self.audit.append(AuditEvent.build(
            object_id=object_id,
            action=action,
            actor_id=actor_id,
            target_principal_id=target,
            metadata=metadata,
            context=context,
        ))

    def upload(
        self,
        owner: Principal,
        content: bytes,
        original_name: str,
        mime_type: str = "application/octet-stream",
        expires_at: datetime = None,
        metadata: dict = None,
        context: RequestContext = None,
    ) -> EncryptedObject:
        """
        Encrypt, watermark and store new content.

        Args:
            owner: The uploading principal; becomes the immutable owner.
            content: Raw bytes (must be non-empty).
            original_name: Client-supplied file name.
            mime_type: Client-supplied content type.
            expires_at: Optional access expiry.
            metadata: Extra JSON-serializable fields for the embedded watermark.

        Returns:
            The created record (status: unverified).
        """
        if not content:
            raise ValidationError("No content provided")
        if len(content) > self.max_file_size:
            raise ValidationError(
                f"Content is {len(content)} bytes; limit is {self.max_file_size}"
            )
        if not original_name:
            raise ValidationError("An original file name is required")

        mark = Watermark(owner_id=owner.id, username=owner.username, created_at=utcnow())
        record = mark.embedded_record()
        if metadata:
            record["metadata"] = metadata

        envelope = self.codec.encrypt(framing.embed(content, record))
        locator = self.storage.put(envelope, original_name)
        mark.embedded = True

        obj = EncryptedObject(
            id=new_object_id(),
            owner_id=owner.id,
            storage_locator=locator,
            size_original=len(content),
            mime_type=mime_type,
            original_name=original_name,
            integrity_digest=compute_digest(envelope),
            watermark=mark,
            expires_at=expires_at,
        )

        try:
            obj = self.repository.create(obj)
        except Exception:
            self._discard_blob(locator)
            raise

        logger.info("Uploaded object %s (%d bytes) for %s", obj.id, obj.size_original, owner.id)
        self._record(
            obj.id, AuditAction.UPLOAD, owner.id,
            metadata={"size": obj.size_original, "mime_type": mime_type},
            context=context,
        )
        return obj

    def _discard_blob(self, locator: str) -> None:
        try:
            self.storage.delete(locator)
        except StorageError:
            logger.exception("Failed to remove blob %s during cleanup", locator)

    def get_object(self, object_id: str, actor_id: str) -> EncryptedObject:
        """Metadata for one object the actor can read."""
        obj = self.repository.get(object_id)
        self.gate.check_read(obj, object_id, actor_id).raise_for_denial()
        return obj

    def download(self, object_id: str, actor_id: str, context: RequestContext = None) -> Download:
        """
        Verify, decrypt and unwrap an object's content.

        Raises:
            NotFoundError, AuthorizationError: Access denied.
            IntegrityError: Digest mismatch (status now tampered) or
                authentication tag failure.
        """
        with self._locks.hold(object_id):
            obj = self.repository.get(object_id)
            self.gate.check_read(obj, object_id, actor_id).raise_for_denial()

            envelope = self.verifier.ensure_intact(obj, actor_id, context)
            content, mark = framing.extract(self.codec.decrypt(envelope))

        self._record(
            obj.id, AuditAction.DOWNLOAD, actor_id,
            metadata={"watermark": mark},
            context=context,
        )
        return Download(content=content, watermark=mark, object=obj)

    def verify(self, object_id: str, actor_id: str, context: RequestContext = None) -> bool:
        """
        Re-check an object's stored bytes and persist the resulting status.

        Returns:
            True if the stored envelope still matches its upload digest.
        """
        with self._locks.hold(object_id):
            obj = self.repository.get(object_id)
            self.gate.check_read(obj, object_id, actor_id).raise_for_denial()
            return self.verifier.verify(obj, actor_id, context)

    def share(
        self,
        object_id: str,
        actor_id: str,
        user_id: str = None,
        email: str = None,
        username: str = None,
        context: RequestContext = None,
    ) -> EncryptedObject:
        """
        Grant read access to another principal, looked up by id, email or
        username. Sharing twice with the same principal is a no-op.

        Raises:
            TamperBlockedError: The object's status is tampered.
            AuthorizationError: Not the owner, or sharing with the owner.
            NotFoundError: Unknown object or target principal.
        """
        with self._locks.hold(object_id):
            obj = self.repository.get(object_id)
            self.gate.check_owner(obj, object_id, actor_id).raise_for_denial()

            target = self.directory.resolve(user_id=user_id, email=email, username=username)
            if target is None:
                raise NotFoundError("User not found")

            decision = self.gate.check_share(obj, object_id, actor_id, target.id)
            if decision.error is TamperBlockedError:
                logger.warning(
                    "Blocked share of tampered object %s by %s to %s",
                    object_id, actor_id, target.id,
                )
                self._record(
                    object_id, AuditAction.TAMPER_SHARE_ATTEMPT, actor_id, target.id,
                    metadata={"status": obj.status.value},
                    context=context,
                )
            decision.raise_for_denial()

            if obj.add_grant(target.id):
                obj = self.repository.update(obj)

        logger.info("Shared object %s with %s", object_id, target.id)
        self._record(object_id, AuditAction.SHARE, actor_id, target.id, context=context)
        return obj

    def unshare(
        self,
        object_id: str,
        actor_id: str,
        principal_id: str,
        context: RequestContext = None,
    ) -> EncryptedObject:
        """Revoke a principal's read access. Owner only."""
        with self._locks.hold(object_id):
            obj = self.repository.get(object_id)
            self.gate.check_owner(obj, object_id, actor_id).raise_for_denial()

            if obj.remove_grant(principal_id):
                obj = self.repository.update(obj)

        logger.info("Unshared object %s from %s", object_id, principal_id)
        self._record(object_id, AuditAction.UNSHARE, actor_id, principal_id, context=context)
        return obj

    def delete(self, object_id: str, actor_id: str, context: RequestContext = None) -> EncryptedObject:
        """
        Soft-delete an object, then remove its envelope from storage.

        The record and its audit trail are kept. Failure to remove the
        envelope is logged and does not fail the delete.
        """
        with self._locks.hold(object_id):
            obj = self.repository.get(object_id)
            self.gate.check_owner(obj, object_id, actor_id).raise_for_denial()

            obj.soft_deleted = True
            obj.deleted_at = utcnow()
            obj = self.repository.update(obj)

        logger.info("Deleted object %s", object_id)
        self._record(object_id, AuditAction.DELETE, actor_id, context=context)
        self._discard_blob(obj.storage_locator)
        return obj

    def list_objects(self, principal_id: str) -> Listing:
        """Live objects the principal owns, and those shared with them; newest first."""
        def newest_first(objs):
            return sorted(objs, key=lambda o: o.uploaded_at, reverse=True)

        return Listing(
            owned=newest_first(self.repository.find_by_owner(principal_id)),
            shared=newest_first(self.repository.find_shared_with(principal_id)),
        )

    def audit_log(self, object_id: str, actor_id: str) -> list[AuditEvent]:
        """An object's audit events, newest first. Owner only; deleted objects included."""
        obj = self.repository.get(object_id)
        self.gate.check_owner(obj, object_id, actor_id, allow_deleted=True).raise_for_denial()
        return self.audit.events_for(object_id)

    @staticmethod
    def outcome(fn, *args, **kwargs) -> Outcome:
        """
        Run a service call and wrap the result.

        Only TamperSealError is converted; anything else is a bug and
        propagates.
        """
        try:
            return Outcome(ok=True, value=fn(*args, **kwargs))
        except TamperSealError as e:
            return Outcome(ok=False, error_kind=e.kind, message=str(e))
