"""
Watermark Framing
Embed a provenance record inside the plaintext before it is encrypted.

Frame layout:

    u32 big-endian length || watermark JSON (UTF-8) || original content

The record travels through encryption with the content and is only
recoverable after decryption. Content may be arbitrary binary.

Extraction never blocks content recovery: if the record cannot be parsed,
the content is still returned and the watermark is None.
"""

import json
import logging

from tamperseal.errors import SerializationError


logger = logging.getLogger(__name__)

LENGTH_PREFIX_SIZE = 4
MAX_WATERMARK_SIZE = 2**32 - 1


def embed(content: bytes, watermark: dict) -> bytes:
    """
    Prepend a watermark record to content.

    Args:
        content: Raw content bytes.
        watermark: A JSON-serializable dict (nesting allowed).

    Returns:
        The framed plaintext.

    Raises:
        SerializationError: If the record is not a JSON-serializable dict.
    """
    if not isinstance(watermark, dict):
        raise SerializationError(f"Watermark must be a dict, got {type(watermark).__name__}")
    try:
        # NaN and Infinity are not JSON
        encoded = json.dumps(watermark, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Watermark is not JSON-serializable: {e}") from e

    if len(encoded) > MAX_WATERMARK_SIZE:
        raise SerializationError("Watermark record too large for a 4-byte length prefix")

    return len(encoded).to_bytes(LENGTH_PREFIX_SIZE, "big") + encoded + bytes(content)


def extract(frame: bytes) -> tuple[bytes, dict | None]:
    """
    Split a frame into content and watermark.

    Returns:
        (content, watermark). watermark is None if the record is missing
        or malformed; content is everything after the declared record.
    """
    if len(frame) < LENGTH_PREFIX_SIZE:
        logger.warning("Frame shorter than length prefix; no watermark recovered")
        return bytes(frame), None

    length = int.from_bytes(frame[:LENGTH_PREFIX_SIZE], "big")
    end = LENGTH_PREFIX_SIZE + length
    content = bytes(frame[end:])

    try:
        watermark = _decode(frame[LENGTH_PREFIX_SIZE:end], length)
    except SerializationError as e:
        logger.warning("Failed to parse watermark: %s", e)
        return content, None

    return content, watermark


def _decode(raw: bytes, declared: int):
    if len(raw) != declared:
        raise SerializationError(
            f"Declared watermark length {declared} exceeds frame ({len(raw)} bytes available)"
        )
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise SerializationError(str(e)) from e
    if not isinstance(record, dict):
        raise SerializationError(f"Watermark must be a JSON object, got {type(record).__name__}")
    return record
