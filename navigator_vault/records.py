"""
Vault Records — the plaintext shape of a vault item.

``VaultRecord`` is the schema enforced at the item cipher boundary when
callers work with password entries rather than arbitrary JSON. Records
exist only in memory; their persisted form is always an item envelope.
"""
from typing import Any, Optional
from collections.abc import Iterable

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from .crypto.items import decrypt_item, encrypt_item
from .crypto.keys import RawKey
from .exceptions import DeserializationError


class VaultRecord(BaseModel):
    """A single password entry."""

    title: str = Field(min_length=1)
    username: str = ""
    password: str = Field(
        default="",
        validation_alias=AliasChoices("password", "secret"),
    )
    url: str = ""
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    folder: Optional[str] = None

    # unknown fields written by other clients survive an edit
    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Trim tags, drop empties and duplicates, keep first-seen order."""
        seen: list[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("folder")
    @classmethod
    def blank_folder(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_plain(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def encrypt_record(key: RawKey, record: VaultRecord) -> str:
    """Encrypt a VaultRecord into an item envelope."""
    return encrypt_item(key, record.to_plain())


def decrypt_record(key: RawKey, envelope: str) -> VaultRecord:
    """Decrypt an item envelope and validate it as a VaultRecord.

    Raises:
        MalformedEnvelope: If the envelope cannot be parsed.
        AuthenticationFailed: Wrong key or corrupted ciphertext.
        DeserializationError: If the plaintext is not a valid record.
    """
    data = decrypt_item(key, envelope)
    try:
        return VaultRecord.model_validate(data)
    except ValidationError as err:
        raise DeserializationError(
            f"decrypted item is not a vault record ({err.error_count()} error(s))"
        ) from err


def collect_tags(records: Iterable[VaultRecord]) -> list[str]:
    """Sorted unique tags across records."""
    return sorted({tag for record in records for tag in record.tags})


def collect_folders(records: Iterable[VaultRecord]) -> list[str]:
    """Sorted unique folder names across records."""
    return sorted({record.folder for record in records if record.folder})


def filter_records(
    records: Iterable[VaultRecord],
    query: Optional[str] = None,
    tags: Iterable[str] = (),
    folder: Optional[str] = None,
) -> list[VaultRecord]:
    """Filter records the way the vault list does.

    Args:
        records: Decrypted records.
        query: Case-insensitive substring matched against title, username,
            url and notes.
        tags: Every tag given must be present on the record.
        folder: Exact folder name.

    Returns:
        Matching records, in input order.
    """
    needle = (query or "").strip().lower()
    wanted = {t.strip() for t in tags if t.strip()}
    result = []
    for record in records:
        if folder is not None and record.folder != folder:
            continue
        if wanted and not wanted.issubset(record.tags):
            continue
        if needle:
            haystack = (record.title, record.username, record.url, record.notes)
            if not any(needle in field.lower() for field in haystack):
                continue
        result.append(record)
    return result
