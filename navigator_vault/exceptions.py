"""
Vault Exceptions — error taxonomy for the key management core.

Security Note:
    Messages never carry key material, plaintext or ciphertext. Failures
    that could act as an oracle (wrong passphrase vs. tampered envelope)
    share a single generic message.
"""
from typing import Optional


class VaultError(Exception):
    """Base class for every error raised by navigator_vault."""


class MalformedEnvelope(VaultError, ValueError):
    """Envelope text is structurally invalid (segments, base64 or lengths)."""


class InvalidKey(VaultError, ValueError):
    """A raw key is not valid base64 or does not hold exactly 32 bytes."""


class AuthenticationFailed(VaultError):
    """Authenticated decryption rejected the ciphertext.

    Raised for a wrong key, a wrong passphrase or a tampered envelope,
    always with the same message.
    """

    def __init__(self, message: str = "authentication failed"):
        super().__init__(message)


class InvalidCredentials(AuthenticationFailed):
    """Login could not unlock the vault master key."""

    def __init__(self, message: str = "invalid credentials"):
        super().__init__(message)


class DeserializationError(VaultError, ValueError):
    """Decryption succeeded but the plaintext is not a valid record."""


class NotAuthenticated(VaultError):
    """The session holds no vault master key."""

    def __init__(self, message: str = "not authenticated: vault master key is not available"):
        super().__init__(message)


class SourceKeyUnavailable(VaultError):
    """A re-key import could not recover the key the bundle was made with."""


class UnsupportedBundleVersion(VaultError, ValueError):
    """Transfer bundle declares a format version this library cannot read."""


class MalformedBundle(VaultError, ValueError):
    """Transfer bundle is not valid JSON or does not match the bundle schema."""


class StoreError(VaultError):
    """Remote item store returned an error or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PerItemFailure(VaultError):
    """Failure scoped to one item of an import batch.

    Recorded in the import summary; a batch never raises it.
    """

    def __init__(self, reason: str, label: str, detail: str):
        super().__init__(f"{reason}:{label} -> {detail}")
        self.reason = reason
        self.label = label
        self.detail = detail
