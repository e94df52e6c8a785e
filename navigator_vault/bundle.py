"""
Transfer Bundle — the versioned export artifact.

JSON layout (format version 1):

    {
      "version": 1,
      "createdAt": "<ISO-8601>",
      "protectedWithPassphrase": true | false,
      "vmkEnvelope": "<password envelope>",      # present iff protected
      "encryptedVMK": "<server-form wrapped VMK>" | null,
      "blobs": [{"id", "encryptedBlob", "createdAt", "updatedAt"}, ...]
    }

``vmkEnvelope`` is written as a password envelope string. The web client
writes it as an object ``{"salt", "iv", "ct"}`` of base64 strings; that
form is read too and normalized to ``salt:iv:ct``.

Bundles are never mutated after export; import reads them as-is.
"""
import asyncio
from pathlib import Path
from typing import Any, Optional, Union
from datetime import datetime, timezone

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import MalformedBundle, UnsupportedBundleVersion
from .store import StoredItem

BUNDLE_VERSION = 1


def default_export_filename(now: Optional[datetime] = None) -> str:
    """``vault-export-YYYY-MM-DD-HH-MM-SS.json`` for the given UTC time."""
    now = now or datetime.now(timezone.utc)
    return f"vault-export-{now.strftime('%Y-%m-%d-%H-%M-%S')}.json"


class TransferBundle(BaseModel):
    """Versioned snapshot of an account's encrypted items."""

    version: int = BUNDLE_VERSION
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )
    protected_with_passphrase: bool = Field(
        default=False, alias="protectedWithPassphrase",
    )
    vmk_envelope: Optional[str] = Field(default=None, alias="vmkEnvelope")
    encrypted_vmk: Optional[str] = Field(default=None, alias="encryptedVMK")
    blobs: list[StoredItem] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("vmk_envelope", mode="before")
    @classmethod
    def join_envelope_object(cls, v: Any) -> Any:
        """Accept ``{"salt", "iv", "ct"}`` as ``salt:iv:ct``."""
        if not isinstance(v, dict):
            return v
        parts = [v.get(name) for name in ("salt", "iv", "ct")]
        if not all(isinstance(part, str) and part for part in parts):
            raise ValueError("vmkEnvelope object needs salt, iv and ct strings")
        return ":".join(parts)

    @model_validator(mode="after")
    def check_protection(self) -> "TransferBundle":
        """vmkEnvelope must be present exactly when the bundle is protected."""
        if self.protected_with_passphrase != bool(self.vmk_envelope):
            raise ValueError(
                "vmkEnvelope must be present if and only if "
                "protectedWithPassphrase is true"
            )
        return self

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "TransferBundle":
        """Parse bundle JSON.

        Raises:
            UnsupportedBundleVersion: If ``version`` is not 1.
            MalformedBundle: If the JSON or its schema is invalid.
        """
        try:
            parsed: Any = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise MalformedBundle("bundle is not valid JSON") from err
        if not isinstance(parsed, dict):
            raise MalformedBundle("bundle must be a JSON object")
        version = parsed.get("version")
        if version != BUNDLE_VERSION or isinstance(version, bool):
            raise UnsupportedBundleVersion(
                f"unsupported export version: {version!r}"
            )
        try:
            return cls.model_validate(parsed)
        except ValidationError as err:
            raise MalformedBundle(
                f"bundle does not match the export schema "
                f"({err.error_count()} error(s))"
            ) from err

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        if data["vmkEnvelope"] is None:
            del data["vmkEnvelope"]
        return data

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict(), option=orjson.OPT_INDENT_2)


async def read_bundle(path: Union[str, Path]) -> TransferBundle:
    """Read and parse a bundle file without blocking the event loop."""
    data = await asyncio.to_thread(Path(path).read_bytes)
    return TransferBundle.from_json(data)


async def write_bundle(bundle: TransferBundle, path: Union[str, Path]) -> Path:
    """Write a bundle file without blocking the event loop."""
    target = Path(path)
    await asyncio.to_thread(target.write_bytes, bundle.to_json())
    return target
