"""
tamperseal — Basic Usage Example

Uploads a file, verifies it, shares it, then simulates someone editing
the encrypted blob on disk. Verification catches the change and sharing
is blocked from then on.
"""

import logging
import shutil
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tamperseal import (
    Config,
    InMemoryDirectory,
    Principal,
    ProtectionService,
    TamperBlockedError,
    generate_key,
)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 50)
    print("  tamperseal — Encrypted, Watermarked, Tamper-Aware")
    print("=" * 50)

    alice = Principal("u1", "alice", "alice@example.com")
    bob = Principal("u2", "bob", "bob@example.com")

    # In production the key comes from ENCRYPTION_KEY via Config.from_env()
    config = Config(encryption_key=generate_key(), upload_dir=Path("./example-uploads"))
    service = ProtectionService.from_config(config, directory=InMemoryDirectory([alice, bob]))

    obj = service.upload(alice, b"This is a test file.", "notes.txt", "text/plain")
    print(f"\nUploaded {obj.original_name} as {obj.storage_locator}")
    print(f"Digest:  {obj.integrity_digest}")
    print(f"Status:  {obj.status.value}")

    print(f"\nVerify #1: {'secure' if service.verify(obj.id, alice.id) else 'tampered'}")
    service.share(obj.id, alice.id, email="bob@example.com")
    print("Shared with bob")

    download = service.download(obj.id, bob.id)
    print(f"Bob downloaded {download.content!r}")
    print(f"Watermark inside: {download.watermark}")

    # Someone flips one byte of the stored blob
    blob_path = config.upload_dir / obj.storage_locator
    blob = bytearray(blob_path.read_bytes())
    blob[-1] ^= 0x01
    blob_path.write_bytes(bytes(blob))
    print("\nFlipped one byte on disk...")

    print(f"Verify #2: {'secure' if service.verify(obj.id, alice.id) else 'tampered'}")
    try:
        service.share(obj.id, alice.id, username="bob")
        print("  ERROR: Should have been blocked!")
    except TamperBlockedError as e:
        print(f"  Share blocked: {e}")

    print("\nAudit trail (newest first):")
    for event in service.audit_log(obj.id, alice.id):
        print(f"  {event.timestamp:%H:%M:%S} {event.action.value:<22} by {event.actor_id}")

    shutil.rmtree(config.upload_dir, ignore_errors=True)
    print("\nCleaned up example files.")


if __name__ == "__main__":
    main()
