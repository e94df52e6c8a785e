"""
Vault Configuration — validated settings read from the environment.

Reads:
    VAULT_CIPHER_BACKEND = aesgcm | chacha20
    VAULT_IMPORT_CONCURRENCY = <integer, 1..32>
    VAULT_API_URL = <base url of the vault REST API>
    VAULT_REQUEST_TIMEOUT = <seconds>

Key derivation parameters are deliberately not configurable: envelopes
do not record them, so every envelope ever written depends on the
constants in ``crypto.kdf``.

Security Note:
    Never log key material. Only log backend names and counts.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.vault")

SUPPORTED_BACKENDS = ("aesgcm", "chacha20")
DEFAULT_API_URL = "http://localhost:4000"


def get_cipher_backend() -> str:
    """Read the AEAD backend name from VAULT_CIPHER_BACKEND.

    Returns:
        Lower-cased backend name, ``aesgcm`` when unset.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm").lower()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unsupported cipher backend: {backend}")
    return backend


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    cipher_backend: str = Field(default="aesgcm")
    import_concurrency: int = Field(default=4, ge=1, le=32)
    api_url: str = Field(default=DEFAULT_API_URL)
    request_timeout: float = Field(default=30.0, ge=1)

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        values = {
            "cipher_backend": os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
            "api_url": os.environ.get("VAULT_API_URL", DEFAULT_API_URL),
        }
        concurrency = os.environ.get("VAULT_IMPORT_CONCURRENCY")
        if concurrency is not None:
            values["import_concurrency"] = int(concurrency)
        timeout = os.environ.get("VAULT_REQUEST_TIMEOUT")
        if timeout is not None:
            values["request_timeout"] = float(timeout)
        config = cls(**values)
        logger.debug(
            "Vault config loaded: backend=%s concurrency=%d",
            config.cipher_backend, config.import_concurrency,
        )
        return config
