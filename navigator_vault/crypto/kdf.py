"""
Key Derivation — passphrase + salt to a symmetric AEAD key.

PBKDF2-HMAC-SHA256 at a fixed 200,000 iterations. Derivation is
deterministic (same passphrase and salt give the same key) and never
cached: every call pays the full cost, which is what throttles offline
guessing against an exfiltrated wrapped key.

Security Note:
    The derived key is held inside a ``DerivedKey`` that can only encrypt
    and decrypt. It never hands back raw key bytes.
"""
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .aead import KEY_LENGTH, new_cipher, open_sealed, seal
from .envelope import SALT_SIZE

KDF_ITERATIONS = 200_000


class DerivedKey:
    """Password-derived AEAD key usable only for encrypt/decrypt."""

    __slots__ = ("_cipher",)

    def __init__(self, cipher) -> None:
        self._cipher = cipher

    def encrypt(self, plaintext: bytes) -> tuple[bytes, bytes]:
        """Encrypt under a fresh nonce, returning (nonce, ciphertext || tag)."""
        return seal(self._cipher, plaintext)

    def decrypt(self, nonce: bytes, ciphertext: bytes) -> bytes:
        """Authenticated-decrypt; raises ``AuthenticationFailed`` on mismatch."""
        return open_sealed(self._cipher, nonce, ciphertext)

    def __repr__(self) -> str:
        return "<DerivedKey>"

    def __reduce__(self):
        raise TypeError("DerivedKey cannot be serialized")


def derive_key(passphrase: str, salt: bytes) -> DerivedKey:
    """Derive an AEAD key from a passphrase using PBKDF2-HMAC-SHA256.

    Args:
        passphrase: Human passphrase (UTF-8 encoded before derivation).
        salt: 16-byte random salt.

    Returns:
        DerivedKey bound to the configured AEAD backend.

    Raises:
        ValueError: If the salt is not 16 bytes.
    """
    if len(salt) != SALT_SIZE:
        raise ValueError(
            f"salt must be {SALT_SIZE} bytes, got {len(salt)}"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return DerivedKey(new_cipher(kdf.derive(passphrase.encode("utf-8"))))
