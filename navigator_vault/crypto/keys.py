"""
Vault Master Key (VMK) — generation and password wrapping.

The VMK is 32 random bytes, carried as base64 text whenever it crosses a
boundary. The server only ever stores it wrapped under the account
password (a password envelope) and cannot unwrap it.

Security Note:
    Never log the VMK, the passphrase or the envelope.
    Wrapping always draws a fresh salt and nonce, so wrapping the same VMK
    twice under the same passphrase yields two different envelopes.
"""
import os
import base64
import binascii
import secrets
from typing import Union

from ..exceptions import InvalidKey
from .aead import KEY_LENGTH
from .envelope import (
    SALT_SIZE,
    format_password_envelope,
    parse_password_envelope,
)
from .kdf import derive_key

RawKey = Union[str, bytes]


def generate_vmk() -> str:
    """Generate a random 32-byte vault master key.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return encode_key(secrets.token_bytes(KEY_LENGTH))


def encode_key(key: bytes) -> str:
    return base64.b64encode(key).decode("ascii")


def key_bytes(key: RawKey) -> bytes:
    """Return the raw 32 bytes of a key given as base64 text or bytes.

    Raises:
        InvalidKey: If the key is not valid base64 or not 32 bytes long.
    """
    if isinstance(key, str):
        try:
            raw = base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError) as err:
            raise InvalidKey("key is not valid base64") from err
    elif isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        raise InvalidKey(f"unsupported key type: {type(key).__name__}")
    if len(raw) != KEY_LENGTH:
        raise InvalidKey(
            f"key must be exactly {KEY_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def wrap_vmk(vmk: RawKey, passphrase: str) -> str:
    """Encrypt the VMK under a passphrase-derived key.

    Args:
        vmk: Vault master key (base64 text or 32 raw bytes).
        passphrase: Account password or transfer passphrase.

    Returns:
        Password envelope ``salt:iv:ciphertext``.

    Raises:
        InvalidKey: If ``vmk`` is not a 32-byte key.
        ValueError: If the passphrase is empty.
    """
    raw = key_bytes(vmk)
    if not passphrase:
        raise ValueError("Passphrase cannot be empty")
    salt = os.urandom(SALT_SIZE)
    nonce, ciphertext = derive_key(passphrase, salt).encrypt(raw)
    return format_password_envelope(salt, nonce, ciphertext)


def unwrap_vmk(envelope: str, passphrase: str) -> str:
    """Recover the VMK from a password envelope.

    Args:
        envelope: Password envelope produced by ``wrap_vmk``.
        passphrase: Passphrase the envelope was wrapped with.

    Returns:
        Base64-encoded VMK.

    Raises:
        MalformedEnvelope: If the envelope cannot be parsed.
        AuthenticationFailed: Wrong passphrase or tampered envelope.
        InvalidKey: If the authenticated plaintext is not a 32-byte key.
    """
    parsed = parse_password_envelope(envelope)
    key = derive_key(passphrase, parsed.salt)
    raw = key.decrypt(parsed.nonce, parsed.ciphertext)
    return encode_key(key_bytes(raw))
