"""
AEAD Primitive — nonce generation, sealing and opening.

Security Note:
    Nonces are drawn independently from os.urandom for every call; there
    is no counter or shared state, so concurrent callers cannot collide
    except by chance (96-bit random, negligible under normal usage).
    ``InvalidTag`` is translated to ``AuthenticationFailed`` here and never
    escapes the package.
"""
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..config import get_cipher_backend
from ..exceptions import AuthenticationFailed
from .envelope import NONCE_SIZE, TAG_SIZE

KEY_LENGTH = 32  # AES-256 / ChaCha20


def _get_cipher_cls() -> type:
    """Return the AEAD cipher class based on VAULT_CIPHER_BACKEND env var."""
    if get_cipher_backend() == "chacha20":
        return ChaCha20Poly1305
    return AESGCM


# Resolve cipher once at module load to prevent encrypt/decrypt mismatch
# if the env var changes mid-process.
CIPHER_CLS = _get_cipher_cls()


def new_cipher(key: bytes):
    """Build an AEAD cipher object for a raw 32-byte key."""
    return CIPHER_CLS(key)


def new_nonce() -> bytes:
    return os.urandom(NONCE_SIZE)


def seal(cipher, plaintext: bytes) -> tuple[bytes, bytes]:
    """Encrypt under a fresh random nonce.

    Returns:
        Tuple of (nonce, ciphertext || tag).
    """
    nonce = new_nonce()
    return nonce, cipher.encrypt(nonce, plaintext, None)


def open_sealed(cipher, nonce: bytes, ciphertext: bytes) -> bytes:
    """Authenticated-decrypt ``ciphertext``.

    No plaintext is returned unless the tag verifies.

    Raises:
        AuthenticationFailed: Wrong key or tampered nonce/ciphertext/tag.
    """
    if len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailed()
    try:
        return cipher.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise AuthenticationFailed() from None
