"""
Item Cipher — JSON records encrypted under the vault master key.

A record is serialized with orjson (sorted keys, so equal records give
equal plaintext), sealed under a fresh random nonce and emitted as a
2-part item envelope ``iv:ciphertext``.

Security Note:
    Never log plaintext or ciphertext values.
    Each call draws its own nonce; there is no shared nonce state between
    calls, concurrent or not.
"""
from typing import Any, Union
from collections.abc import Mapping

import orjson
from pydantic import BaseModel

from ..exceptions import DeserializationError
from .aead import new_cipher, open_sealed, seal
from .envelope import format_item_envelope, parse_item_envelope
from .keys import RawKey, key_bytes

Record = Union[Mapping[str, Any], BaseModel]


def serialize_record(record: Record) -> bytes:
    """Serialize a record (mapping or pydantic model) to canonical JSON bytes.

    Raises:
        TypeError: If the record is not a mapping/model or holds values
            JSON cannot represent.
    """
    if isinstance(record, BaseModel):
        record = record.model_dump(mode="json", by_alias=True)
    if not isinstance(record, Mapping):
        raise TypeError(
            f"vault records must be JSON objects, got {type(record).__name__}"
        )
    return orjson.dumps(dict(record), option=orjson.OPT_SORT_KEYS)


def deserialize_record(data: bytes) -> dict[str, Any]:
    """Parse decrypted plaintext back into a record.

    Raises:
        DeserializationError: If the plaintext is not a JSON object.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise DeserializationError("decrypted item is not valid JSON") from err
    if not isinstance(parsed, dict):
        raise DeserializationError(
            f"decrypted item is not a JSON object ({type(parsed).__name__})"
        )
    return parsed


def encrypt_item(key: RawKey, record: Record) -> str:
    """Encrypt a record under a raw key.

    Args:
        key: 32-byte key (base64 text or bytes), normally the VMK.
        record: JSON object to encrypt.

    Returns:
        Item envelope ``iv:ciphertext``.
    """
    cipher = new_cipher(key_bytes(key))
    nonce, ciphertext = seal(cipher, serialize_record(record))
    return format_item_envelope(nonce, ciphertext)


def decrypt_item(key: RawKey, envelope: str) -> dict[str, Any]:
    """Decrypt an item envelope back into its record.

    Raises:
        MalformedEnvelope: If the envelope cannot be parsed.
        AuthenticationFailed: Wrong key or corrupted ciphertext.
        DeserializationError: If the plaintext is not a JSON object.
    """
    parsed = parse_item_envelope(envelope)
    cipher = new_cipher(key_bytes(key))
    plaintext = open_sealed(cipher, parsed.nonce, parsed.ciphertext)
    return deserialize_record(plaintext)
