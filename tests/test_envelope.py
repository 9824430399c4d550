"""Tests for the envelope codec and configuration."""

import os
import tempfile
import warnings
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tamperseal import watermark
from tamperseal.config import Config, parse_key
from tamperseal.envelope import (
    HEADER_SIZE,
    NONCE_SIZE,
    EnvelopeCodec,
    EphemeralKeyWarning,
    generate_key,
    secure_filename,
)
from tamperseal.errors import ConfigurationError, IntegrityError


def test_round_trip_with_watermark():
    """extract(decrypt(encrypt(embed(C, W)))) == (C, W)."""
    codec = EnvelopeCodec(generate_key())
    content = b"This is a test file."
    mark = {"ownerId": "u1", "username": "alice", "timestamp": "2024-01-01T00:00:00Z"}

    envelope = codec.encrypt(watermark.embed(content, mark))
    recovered, recovered_mark = watermark.extract(codec.decrypt(envelope))

    assert len(content) == 20
    assert recovered == content
    assert recovered_mark == mark
    print("  [PASS] Round trip with watermark")


def test_binary_payload():
    codec = EnvelopeCodec(generate_key())
    payload = bytes([0x00, 0x01, 0x02, 0xFF, 0xFE]) + os.urandom(1000)
    assert codec.decrypt(codec.encrypt(payload)) == payload
    assert codec.decrypt(codec.encrypt(b"")) == b""
    print("  [PASS] Binary payload preserved")


def test_envelope_layout():
    """nonce(16) || tag(16) || ciphertext, ciphertext same length as payload."""
    codec = EnvelopeCodec(generate_key())
    payload = b"x" * 57
    envelope = codec.encrypt(payload)

    assert HEADER_SIZE == 32
    assert len(envelope) == HEADER_SIZE + len(payload)
    assert payload not in envelope
    print("  [PASS] Envelope layout")


def test_fresh_nonce_every_call():
    codec = EnvelopeCodec(generate_key())
    nonces = {codec.encrypt(b"same payload")[:NONCE_SIZE] for _ in range(200)}
    assert len(nonces) == 200
    print("  [PASS] Nonce never repeats")


def test_every_ciphertext_bit_flip_detected():
    """Flipping any single bit after the nonce/tag prefix fails authentication."""
    codec = EnvelopeCodec(generate_key())
    envelope = codec.encrypt(watermark.embed(b"This is a test file.", {"ownerId": "u1"}))

    for byte_index in range(HEADER_SIZE, len(envelope)):
        for bit in range(8):
            tampered = bytearray(envelope)
            tampered[byte_index] ^= 1 << bit
            try:
                codec.decrypt(bytes(tampered))
                assert False, f"Flip at byte {byte_index} bit {bit} not detected"
            except IntegrityError:
                pass
    print("  [PASS] Every ciphertext bit flip detected")


def test_header_tampering_detected():
    codec = EnvelopeCodec(generate_key())
    envelope = codec.encrypt(b"secret content")

    for index in (0, NONCE_SIZE - 1, NONCE_SIZE, HEADER_SIZE - 1):
        tampered = bytearray(envelope)
        tampered[index] ^= 0xFF
        try:
            codec.decrypt(bytes(tampered))
            assert False, f"Header byte {index} tampering not detected"
        except IntegrityError:
            pass
    print("  [PASS] Nonce and tag tampering detected")


def test_truncated_envelope_rejected():
    codec = EnvelopeCodec(generate_key())
    envelope = codec.encrypt(b"secret content")

    for cut in (0, 10, HEADER_SIZE - 1, len(envelope) - 1):
        try:
            codec.decrypt(envelope[:cut])
            assert False, f"Truncation to {cut} bytes not detected"
        except IntegrityError:
            pass
    print("  [PASS] Truncated envelopes rejected")


def test_wrong_key_fails():
    envelope = EnvelopeCodec(generate_key()).encrypt(b"secret content")
    try:
        EnvelopeCodec(generate_key()).decrypt(envelope)
        assert False, "Wrong key should not decrypt"
    except IntegrityError:
        pass
    print("  [PASS] Wrong key fails")


def test_key_size_enforced():
    for bad in (None, b"", b"x" * 16, b"x" * 33):
        try:
            EnvelopeCodec(bad)
            assert False, f"Key of {bad!r} should be rejected"
        except ConfigurationError:
            pass
    print("  [PASS] Key size enforced")


def test_file_helpers():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmp = Path(tmpdir)
        codec = EnvelopeCodec(generate_key())
        src = tmp / "plain.txt"
        src.write_bytes(b"This is a secret test file content!")

        enc = codec.encrypt_file(src, tmp / "plain.txt.enc")
        assert enc.read_bytes() != src.read_bytes()

        out = tmp / "decrypted.txt"
        plaintext = codec.decrypt_file(enc, out)
        assert plaintext == src.read_bytes()
        assert out.read_bytes() == src.read_bytes()
    print("  [PASS] File helpers")


def test_secure_filename():
    name = secure_filename("report.final.pdf")
    assert name.endswith(".pdf.enc")
    assert "report" not in name
    assert len(name) == 32 + len(".pdf.enc")
    assert secure_filename("report.pdf") != secure_filename("report.pdf")
    assert secure_filename("noext").endswith(".enc")
    print("  [PASS] Secure filename")


def test_configured_key_is_used():
    key = generate_key()
    envelope = EnvelopeCodec(key).encrypt(b"payload")
    codec = EnvelopeCodec.from_config(Config(encryption_key=key))
    assert codec.decrypt(envelope) == b"payload"
    print("  [PASS] Configured key used")


def test_ephemeral_key_warns():
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        codec = EnvelopeCodec.from_config(Config())

    assert any(issubclass(w.category, EphemeralKeyWarning) for w in caught)
    assert codec.decrypt(codec.encrypt(b"payload")) == b"payload"
    print("  [PASS] Ephemeral key warns")


def test_parse_key():
    assert parse_key("k" * 32) == b"k" * 32
    raw = os.urandom(32)
    assert parse_key(raw.hex()) == raw

    for bad in ("short", "z" * 64, "k" * 40):
        try:
            parse_key(bad)
            assert False, f"{bad!r} should be rejected"
        except ConfigurationError:
            pass
    print("  [PASS] Key parsing")


def test_config_from_env():
    key_hex = os.urandom(32).hex()
    config = Config.from_env({
        "ENCRYPTION_KEY": key_hex,
        "UPLOAD_DIR": "/tmp/blobs",
        "MAX_FILE_SIZE": "1024",
        "TAMPERSEAL_AUDIT_LOG": "/tmp/audit.jsonl",
    })
    assert config.encryption_key == bytes.fromhex(key_hex)
    assert config.upload_dir == Path("/tmp/blobs")
    assert config.max_file_size == 1024
    assert config.audit_log_path == Path("/tmp/audit.jsonl")

    defaults = Config.from_env({})
    assert defaults.encryption_key is None
    assert defaults.max_file_size == 50 * 1024 * 1024
    assert defaults.audit_log_path is None

    for bad in ({"MAX_FILE_SIZE": "lots"}, {"MAX_FILE_SIZE": "0"}):
        try:
            Config.from_env(bad)
            assert False, f"{bad} should be rejected"
        except ConfigurationError:
            pass
    print("  [PASS] Config from environment")


if __name__ == "__main__":
    print("Testing envelope codec...\n")
    test_round_trip_with_watermark()
    test_binary_payload()
    test_envelope_layout()
    test_fresh_nonce_every_call()
    test_every_ciphertext_bit_flip_detected()
    test_header_tampering_detected()
    test_truncated_envelope_rejected()
    test_wrong_key_fails()
    test_key_size_enforced()
    test_file_helpers()
    test_secure_filename()
    test_configured_key_is_used()
    test_ephemeral_key_warns()
    test_parse_key()
    test_config_from_env()
    print(f"\n{'='*50}")
    print("All 15 envelope tests passed!")
