"""Tests for watermark framing."""

import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tamperseal.errors import SerializationError
from tamperseal.watermark import embed, extract


def test_frame_layout():
    """u32BE(len) || JSON || content."""
    mark = {"ownerId": "u1"}
    frame = embed(b"content", mark)
    encoded = json.dumps(mark).encode("utf-8")

    assert frame[:4] == len(encoded).to_bytes(4, "big")
    assert frame[4:4 + len(encoded)] == encoded
    assert frame[4 + len(encoded):] == b"content"
    print("  [PASS] Frame layout")


def test_nested_metadata():
    mark = {
        "ownerId": "user123",
        "username": "testuser",
        "metadata": {
            "department": "IT",
            "classification": "confidential",
            "tags": ["important", "secret"],
            "level": 3,
            "note": "ünïcødé",
        },
    }
    content, recovered = extract(embed(b"data", mark))
    assert content == b"data"
    assert recovered == mark
    print("  [PASS] Nested metadata")


def test_binary_content_untouched():
    content = bytes(range(256)) * 4
    recovered, mark = extract(embed(content, {"ownerId": "u1"}))
    assert recovered == content
    assert mark == {"ownerId": "u1"}
    print("  [PASS] Binary content")


def test_malformed_metadata_keeps_content():
    bad_json = b"{not json"
    frame = len(bad_json).to_bytes(4, "big") + bad_json + b"payload"
    content, mark = extract(frame)
    assert content == b"payload"
    assert mark is None

    bad_utf8 = b"\xff\xfe\xfd"
    frame = len(bad_utf8).to_bytes(4, "big") + bad_utf8 + b"payload"
    content, mark = extract(frame)
    assert content == b"payload"
    assert mark is None
    print("  [PASS] Malformed metadata degrades to None")


def test_length_past_end_of_frame():
    frame = (1000).to_bytes(4, "big") + b'{"a": 1}'
    content, mark = extract(frame)
    assert mark is None
    assert content == b""
    print("  [PASS] Overlong length prefix")


def test_short_frame():
    content, mark = extract(b"ab")
    assert content == b"ab"
    assert mark is None
    print("  [PASS] Short frame")


def test_non_object_metadata_ignored():
    for raw in (b"5", b"\"owner\"", b"[1, 2]", b"null"):
        frame = len(raw).to_bytes(4, "big") + raw + b"content"
        content, mark = extract(frame)
        assert content == b"content"
        assert mark is None
    print("  [PASS] Non-object metadata degrades to None")


def test_unserializable_watermark_rejected():
    for bad in (
        {"when": object()},
        {"v": float("nan")},
        {"v": float("inf")},
        ["not", "a", "record"],
    ):
        try:
            embed(b"data", bad)
            assert False, f"Watermark {bad!r} should be rejected"
        except SerializationError:
            pass
    print("  [PASS] Unserializable watermark rejected")


if __name__ == "__main__":
    print("Testing watermark framing...\n")
    test_frame_layout()
    test_nested_metadata()
    test_binary_content_untouched()
    test_malformed_metadata_keeps_content()
    test_length_past_end_of_frame()
    test_short_frame()
    test_non_object_metadata_ignored()
    test_unserializable_watermark_rejected()
    print(f"\n{'='*50}")
    print("All 8 watermark tests passed!")
