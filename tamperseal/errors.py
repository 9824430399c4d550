"""
Error taxonomy.

Every failure a caller can see is one of these. Each class carries a short
``kind`` string so that an outer layer (HTTP, RPC, CLI) can map it to its
own status codes without importing the classes.
"""


class TamperSealError(Exception):
    """Base class for all tamperseal errors."""

    kind = "error"


class ValidationError(TamperSealError):
    """Missing or empty required input (no content, oversized upload, ...)."""

    kind = "validation"


class NotFoundError(TamperSealError):
    """Object or principal does not exist, or the object is soft-deleted."""

    kind = "not_found"


class AuthorizationError(TamperSealError):
    """Principal lacks the required relationship to the object."""

    kind = "authorization"


class TamperBlockedError(TamperSealError):
    """
    Share attempted on an object whose status is ``tampered``.

    Not an AuthorizationError: an ``except AuthorizationError`` handler
    does not catch it, so a tamper block is never reported as a plain
    permission denial.
    """

    kind = "tamper_blocked"


class IntegrityError(TamperSealError):
    """Authentication tag failure on decrypt, or digest mismatch on verify."""

    kind = "integrity"


class StorageError(TamperSealError):
    """Underlying byte storage read/write failure."""

    kind = "storage"


class SerializationError(TamperSealError):
    """Watermark metadata could not be serialized or parsed."""

    kind = "serialization"


class IdentityLookupError(TamperSealError):
    """Transient failure while resolving a principal (not a not-found)."""

    kind = "identity_lookup"


class ConfigurationError(TamperSealError):
    """Invalid process configuration (e.g. a malformed encryption key)."""

    kind = "configuration"
