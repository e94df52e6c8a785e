"""
Tests for the envelope codec.

Tests cover:
- Generic encode/decode of colon-delimited base64 segments
- Segment count and base64 validation
- Length validation for password and item envelopes
"""
import base64

import pytest

from navigator_vault.crypto.envelope import (
    encode,
    decode,
    parse_password_envelope,
    parse_item_envelope,
    format_item_envelope,
    format_password_envelope,
)
from navigator_vault.exceptions import MalformedEnvelope


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


SALT = b"s" * 16
NONCE = b"n" * 12
CIPHERTEXT = b"c" * 20  # 4 bytes of payload + 16-byte tag


class TestCodec:
    """Generic, meaning-free codec."""

    def test_encode_joins_base64_segments(self):
        assert encode([b"ab", b"cd"]) == f"{b64(b'ab')}:{b64(b'cd')}"

    def test_decode_returns_bytes(self):
        text = encode([b"\x00\x01", b"\xff" * 5, b"xyz"])
        assert decode(text, 3) == [b"\x00\x01", b"\xff" * 5, b"xyz"]

    def test_decode_wrong_segment_count(self):
        text = encode([b"a", b"b"])
        with pytest.raises(MalformedEnvelope):
            decode(text, 3)

    def test_decode_extra_separator(self):
        with pytest.raises(MalformedEnvelope):
            decode(encode([b"a", b"b"]) + ":", 2)

    def test_decode_invalid_base64(self):
        with pytest.raises(MalformedEnvelope):
            decode("not base64!:AAAA", 2)

    def test_decode_rejects_non_text(self):
        with pytest.raises(MalformedEnvelope):
            decode(b"AAAA:AAAA", 2)

    def test_malformed_envelope_is_value_error(self):
        with pytest.raises(ValueError):
            decode("", 2)


class TestPasswordEnvelope:
    """salt:iv:ciphertext envelopes."""

    def test_parse_valid(self):
        text = format_password_envelope(SALT, NONCE, CIPHERTEXT)
        parsed = parse_password_envelope(text)
        assert parsed.salt == SALT
        assert parsed.nonce == NONCE
        assert parsed.ciphertext == CIPHERTEXT

    def test_wire_format(self):
        text = format_password_envelope(SALT, NONCE, CIPHERTEXT)
        assert text == f"{b64(SALT)}:{b64(NONCE)}:{b64(CIPHERTEXT)}"

    def test_short_salt(self):
        text = format_password_envelope(b"s" * 15, NONCE, CIPHERTEXT)
        with pytest.raises(MalformedEnvelope):
            parse_password_envelope(text)

    def test_wrong_nonce_length(self):
        text = format_password_envelope(SALT, b"n" * 16, CIPHERTEXT)
        with pytest.raises(MalformedEnvelope):
            parse_password_envelope(text)

    def test_ciphertext_shorter_than_tag(self):
        text = format_password_envelope(SALT, NONCE, b"c" * 15)
        with pytest.raises(MalformedEnvelope):
            parse_password_envelope(text)

    def test_empty_segment(self):
        with pytest.raises(MalformedEnvelope):
            parse_password_envelope(f"{b64(SALT)}::{b64(CIPHERTEXT)}")

    def test_item_envelope_is_not_a_password_envelope(self):
        with pytest.raises(MalformedEnvelope):
            parse_password_envelope(format_item_envelope(NONCE, CIPHERTEXT))


class TestItemEnvelope:
    """iv:ciphertext envelopes."""

    def test_parse_valid(self):
        parsed = parse_item_envelope(format_item_envelope(NONCE, CIPHERTEXT))
        assert parsed.nonce == NONCE
        assert parsed.ciphertext == CIPHERTEXT

    @pytest.mark.parametrize("pad", [" ", "\n", "\t"])
    def test_surrounding_whitespace_rejected(self, pad):
        text = pad + format_item_envelope(NONCE, CIPHERTEXT) + pad
        with pytest.raises(MalformedEnvelope):
            parse_item_envelope(text)

    def test_three_segments_rejected(self):
        with pytest.raises(MalformedEnvelope):
            parse_item_envelope(format_password_envelope(SALT, NONCE, CIPHERTEXT))

    def test_tag_only_ciphertext_is_accepted(self):
        parsed = parse_item_envelope(format_item_envelope(NONCE, b"t" * 16))
        assert len(parsed.ciphertext) == 16
