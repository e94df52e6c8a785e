"""
Envelope Codec — the colon-delimited base64 wire format.

Every ciphertext-bearing value crosses process boundaries as text:

    password envelope:  base64(salt 16B) : base64(iv 12B) : base64(ciphertext || tag 16B)
    item envelope:      base64(iv 12B) : base64(ciphertext || tag 16B)

Exported bundles store these strings verbatim, so this format cannot
change without breaking every bundle already written.

``encode``/``decode`` are pure and know nothing about segment meaning;
``parse_password_envelope``/``parse_item_envelope`` add the length checks.
An envelope is either fully well-formed or rejected with
``MalformedEnvelope``.
"""
import base64
import binascii
from typing import NamedTuple
from collections.abc import Sequence

from ..exceptions import MalformedEnvelope

SEPARATOR = ":"
SALT_SIZE = 16
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit tag


class PasswordEnvelope(NamedTuple):
    salt: bytes
    nonce: bytes
    ciphertext: bytes  # includes the trailing tag


class ItemEnvelope(NamedTuple):
    nonce: bytes
    ciphertext: bytes  # includes the trailing tag


def encode(parts: Sequence[bytes]) -> str:
    """Join base64-encoded segments with ``:``.

    Args:
        parts: Byte segments, in wire order.

    Returns:
        Envelope text.
    """
    return SEPARATOR.join(
        base64.b64encode(part).decode("ascii") for part in parts
    )


def decode(text: str, expected_parts: int) -> list[bytes]:
    """Split envelope text on ``:`` and base64-decode every segment.

    Args:
        text: Envelope text.
        expected_parts: Number of segments the caller requires.

    Returns:
        Decoded segments, in wire order.

    Raises:
        MalformedEnvelope: If the segment count differs or a segment is
            not valid base64.
    """
    if not isinstance(text, str):
        raise MalformedEnvelope("envelope must be text")
    segments = text.split(SEPARATOR)
    if len(segments) != expected_parts:
        raise MalformedEnvelope(
            f"expected {expected_parts} envelope segments, got {len(segments)}"
        )
    parts: list[bytes] = []
    for idx, segment in enumerate(segments):
        try:
            parts.append(base64.b64decode(segment, validate=True))
        except (binascii.Error, ValueError) as err:
            raise MalformedEnvelope(
                f"envelope segment {idx} is not valid base64"
            ) from err
    return parts


def _check_ciphertext(ciphertext: bytes) -> None:
    if len(ciphertext) < TAG_SIZE:
        raise MalformedEnvelope(
            f"ciphertext too short: {len(ciphertext)} bytes "
            f"(minimum {TAG_SIZE})"
        )


def _check_nonce(nonce: bytes) -> None:
    if len(nonce) != NONCE_SIZE:
        raise MalformedEnvelope(
            f"iv must be {NONCE_SIZE} bytes, got {len(nonce)}"
        )


def parse_password_envelope(text: str) -> PasswordEnvelope:
    """Decode and validate a 3-part password envelope.

    Raises:
        MalformedEnvelope: On any structural or length problem.
    """
    salt, nonce, ciphertext = decode(text, 3)
    if len(salt) != SALT_SIZE:
        raise MalformedEnvelope(
            f"salt must be {SALT_SIZE} bytes, got {len(salt)}"
        )
    _check_nonce(nonce)
    _check_ciphertext(ciphertext)
    return PasswordEnvelope(salt, nonce, ciphertext)


def parse_item_envelope(text: str) -> ItemEnvelope:
    """Decode and validate a 2-part item envelope.

    Raises:
        MalformedEnvelope: On any structural or length problem.
    """
    nonce, ciphertext = decode(text, 2)
    _check_nonce(nonce)
    _check_ciphertext(ciphertext)
    return ItemEnvelope(nonce, ciphertext)


def format_password_envelope(salt: bytes, nonce: bytes, ciphertext: bytes) -> str:
    return encode((salt, nonce, ciphertext))


def format_item_envelope(nonce: bytes, ciphertext: bytes) -> str:
    return encode((nonce, ciphertext))
