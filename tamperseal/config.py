"""
Process configuration.

Loaded once at startup, usually from the environment:

  ENCRYPTION_KEY        32-character UTF-8 string, or 64 hex characters
  UPLOAD_DIR            Directory for encrypted blobs (default ./uploads)
  MAX_FILE_SIZE         Upload size limit in bytes (default 50 MiB)
  TAMPERSEAL_AUDIT_LOG  Optional JSON-lines audit log path

The encryption key is immutable for the lifetime of the process. Rotation
would need envelope versioning and is not handled here.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from tamperseal.errors import ConfigurationError


KEY_SIZE = 32  # AES-256
DEFAULT_UPLOAD_DIR = "./uploads"
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024


def parse_key(raw: str) -> bytes:
    """
    Decode an ENCRYPTION_KEY value into 32 raw key bytes.

    Accepts either a 32-character UTF-8 string (used as-is) or a
    64-character hex string.

    Raises:
        ConfigurationError: If the value is neither.
    """
    encoded = raw.encode("utf-8")
    if len(encoded) == KEY_SIZE:
        return encoded

    if len(raw) == KEY_SIZE * 2:
        try:
            return bytes.fromhex(raw)
        except ValueError:
            pass

    raise ConfigurationError(
        f"ENCRYPTION_KEY must be {KEY_SIZE} UTF-8 bytes or "
        f"{KEY_SIZE * 2} hex characters"
    )


@dataclass(frozen=True)
class Config:
    """Startup configuration for a ProtectionService."""
    encryption_key: bytes | None = None
    upload_dir: Path = Path(DEFAULT_UPLOAD_DIR)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    audit_log_path: Path | None = None

    @classmethod
    def from_env(cls, environ: dict = None) -> "Config":
        """Build a Config from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        raw_key = env.get("ENCRYPTION_KEY")
        key = parse_key(raw_key) if raw_key else None

        raw_size = env.get("MAX_FILE_SIZE")
        try:
            max_size = int(raw_size) if raw_size else DEFAULT_MAX_FILE_SIZE
        except ValueError:
            raise ConfigurationError(f"MAX_FILE_SIZE is not an integer: {raw_size!r}")
        if max_size <= 0:
            raise ConfigurationError("MAX_FILE_SIZE must be positive")

        audit_log = env.get("TAMPERSEAL_AUDIT_LOG")

        return cls(
            encryption_key=key,
            upload_dir=Path(env.get("UPLOAD_DIR") or DEFAULT_UPLOAD_DIR),
            max_file_size=max_size,
            audit_log_path=Path(audit_log) if audit_log else None,
        )
