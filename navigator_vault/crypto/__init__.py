"""Client-side cryptography: envelopes, key derivation, VMK and item ciphers."""
from .envelope import (
    encode,
    decode,
    parse_password_envelope,
    parse_item_envelope,
    PasswordEnvelope,
    ItemEnvelope,
)
from .kdf import derive_key, DerivedKey, KDF_ITERATIONS
from .keys import generate_vmk, wrap_vmk, unwrap_vmk, key_bytes, encode_key
from .items import encrypt_item, decrypt_item

__all__ = [
    "encode",
    "decode",
    "parse_password_envelope",
    "parse_item_envelope",
    "PasswordEnvelope",
    "ItemEnvelope",
    "derive_key",
    "DerivedKey",
    "KDF_ITERATIONS",
    "generate_vmk",
    "wrap_vmk",
    "unwrap_vmk",
    "key_bytes",
    "encode_key",
    "encrypt_item",
    "decrypt_item",
]
