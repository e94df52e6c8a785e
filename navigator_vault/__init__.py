"""Navigator Vault — zero-knowledge key management for a password manager.

Security Note (Threat Model):
    The server only ever receives opaque envelopes: item ciphertexts and
    the master key wrapped under the account password. The vault master
    key and decrypted records exist in process memory while a session is
    unlocked. A memory dump of the client process could expose them; this
    is an accepted limitation.
"""
from .version import __version__
from .config import VaultConfig
from .exceptions import (
    VaultError,
    MalformedEnvelope,
    InvalidKey,
    AuthenticationFailed,
    InvalidCredentials,
    DeserializationError,
    NotAuthenticated,
    SourceKeyUnavailable,
    UnsupportedBundleVersion,
    MalformedBundle,
    StoreError,
    PerItemFailure,
)
from .crypto import (
    derive_key,
    generate_vmk,
    wrap_vmk,
    unwrap_vmk,
    encrypt_item,
    decrypt_item,
)
from .records import VaultRecord, encrypt_record, decrypt_record
from .session import KeySession
from .store import ItemStore, MemoryItemStore, RemoteItemStore, StoredItem
from .vault import SessionVault
from .bundle import TransferBundle, read_bundle, write_bundle
from .transfer import (
    ImportMode,
    ItemState,
    ImportSummary,
    export_bundle,
    export_to_file,
    import_bundle,
    import_from_file,
)
from .generator import PasswordPolicy, generate_password

__all__ = [
    "__version__",
    "VaultConfig",
    "VaultError",
    "MalformedEnvelope",
    "InvalidKey",
    "AuthenticationFailed",
    "InvalidCredentials",
    "DeserializationError",
    "NotAuthenticated",
    "SourceKeyUnavailable",
    "UnsupportedBundleVersion",
    "MalformedBundle",
    "StoreError",
    "PerItemFailure",
    "derive_key",
    "generate_vmk",
    "wrap_vmk",
    "unwrap_vmk",
    "encrypt_item",
    "decrypt_item",
    "VaultRecord",
    "encrypt_record",
    "decrypt_record",
    "KeySession",
    "ItemStore",
    "MemoryItemStore",
    "RemoteItemStore",
    "StoredItem",
    "SessionVault",
    "TransferBundle",
    "read_bundle",
    "write_bundle",
    "ImportMode",
    "ItemState",
    "ImportSummary",
    "export_bundle",
    "export_to_file",
    "import_bundle",
    "import_from_file",
    "PasswordPolicy",
    "generate_password",
]
