"""
tamperseal — Tamper-Evident Content Protection
At-rest encryption with embedded provenance and a tamper-aware sharing policy.

Four layers, leaves first:
1. Envelope — AES-256-GCM encryption under one process key
2. Watermark — owner provenance framed inside the plaintext
3. Integrity — SHA-256 over the stored ciphertext, and a status machine
   (unverified → secure | tampered)
4. Access — ownership and sharing rules; tampered objects cannot be shared

Every content-affecting action lands in an append-only audit trail.

Usage:
    from tamperseal import Config, ProtectionService, Principal
    service = ProtectionService.from_config(Config.from_env())
    obj = service.upload(Principal("u1", "alice"), b"...", "notes.txt", "text/plain")
    service.verify(obj.id, "u1")
"""

from tamperseal.access import AccessControlGate, Decision
from tamperseal.audit import (
    AuditAction,
    AuditEvent,
    AuditRecorder,
    InMemoryAuditRecorder,
    JsonLinesAuditRecorder,
    RequestContext,
)
from tamperseal.config import Config
from tamperseal.envelope import EnvelopeCodec, EphemeralKeyWarning, generate_key, secure_filename
from tamperseal.errors import (
    AuthorizationError,
    ConfigurationError,
    IdentityLookupError,
    IntegrityError,
    NotFoundError,
    SerializationError,
    StorageError,
    TamperBlockedError,
    TamperSealError,
    ValidationError,
)
from tamperseal.identity import InMemoryDirectory, PrincipalDirectory
from tamperseal.integrity import IntegrityVerifier, compute_digest
from tamperseal.models import EncryptedObject, ObjectStatus, Principal, ShareGrant, Watermark
from tamperseal.repository import InMemoryRepository, JsonDirectoryRepository, ObjectRepository
from tamperseal.service import Download, Listing, Outcome, ProtectionService
from tamperseal.storage import BlobStorage, InMemoryStorage, LocalDiskStorage
from tamperseal.watermark import embed, extract

__version__ = "0.1.0"
__all__ = [
    "ProtectionService",
    "Download",
    "Listing",
    "Outcome",
    "Config",
    "EnvelopeCodec",
    "EphemeralKeyWarning",
    "generate_key",
    "secure_filename",
    "embed",
    "extract",
    "IntegrityVerifier",
    "compute_digest",
    "AccessControlGate",
    "Decision",
    "AuditAction",
    "AuditEvent",
    "AuditRecorder",
    "InMemoryAuditRecorder",
    "JsonLinesAuditRecorder",
    "RequestContext",
    "EncryptedObject",
    "ObjectStatus",
    "Principal",
    "ShareGrant",
    "Watermark",
    "ObjectRepository",
    "InMemoryRepository",
    "JsonDirectoryRepository",
    "PrincipalDirectory",
    "InMemoryDirectory",
    "BlobStorage",
    "InMemoryStorage",
    "LocalDiskStorage",
    "TamperSealError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "TamperBlockedError",
    "IntegrityError",
    "StorageError",
    "SerializationError",
    "IdentityLookupError",
    "ConfigurationError",
]
