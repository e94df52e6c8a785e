"""
Item Store — where item envelopes are persisted.

The store only ever sees opaque envelope text. ``MemoryItemStore`` keeps
items in process; ``RemoteItemStore`` talks to the vault REST API over
aiohttp:

    GET    /api/vault          list items
    POST   /api/vault          {encryptedBlob}      create item
    PUT    /api/vault/{id}     {encryptedBlob}      update item
    DELETE /api/vault/{id}                          delete item
    GET    /api/auth/me        {encryptedVMK}       account's wrapped VMK

Security Note:
    Never log envelope text. Only log item ids and HTTP status codes.
"""
import uuid
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import datetime, timezone

import aiohttp
import orjson
from pydantic import BaseModel, Field

from .config import VaultConfig
from .exceptions import StoreError

logger = logging.getLogger("navigator.vault")


class StoredItem(BaseModel):
    """An encrypted vault item as the server returns it."""

    id: Optional[str] = None
    encrypted_blob: str = Field(alias="encryptedBlob")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    model_config = {"populate_by_name": True}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ItemStore(ABC):
    """Remote item store contract: list/create/update/delete over envelopes."""

    @abstractmethod
    async def list_items(self) -> list[StoredItem]:
        ...

    @abstractmethod
    async def create_item(self, encrypted_blob: str) -> StoredItem:
        ...

    @abstractmethod
    async def update_item(self, item_id: str, encrypted_blob: str) -> StoredItem:
        ...

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        ...

    @abstractmethod
    async def get_encrypted_vmk(self) -> Optional[str]:
        """Return the account's password-wrapped VMK, if known."""


class MemoryItemStore(ItemStore):
    """In-process item store."""

    def __init__(self, encrypted_vmk: Optional[str] = None):
        self._items: dict[str, StoredItem] = {}
        self.encrypted_vmk = encrypted_vmk

    def __len__(self) -> int:
        return len(self._items)

    async def list_items(self) -> list[StoredItem]:
        return [item.model_copy() for item in self._items.values()]

    async def create_item(self, encrypted_blob: str) -> StoredItem:
        if not encrypted_blob:
            raise StoreError("missing_encryptedBlob", status=400)
        now = datetime.now(timezone.utc)
        item = StoredItem(
            id=uuid.uuid4().hex,
            encrypted_blob=encrypted_blob,
            created_at=now,
            updated_at=now,
        )
        self._items[item.id] = item
        return item.model_copy()

    async def update_item(self, item_id: str, encrypted_blob: str) -> StoredItem:
        if not encrypted_blob:
            raise StoreError("missing_encryptedBlob", status=400)
        try:
            item = self._items[item_id]
        except KeyError:
            raise StoreError("not_found", status=404) from None
        item.encrypted_blob = encrypted_blob
        item.updated_at = datetime.now(timezone.utc)
        return item.model_copy()

    async def delete_item(self, item_id: str) -> None:
        if self._items.pop(item_id, None) is None:
            raise StoreError("not_found", status=404)

    async def get_encrypted_vmk(self) -> Optional[str]:
        return self.encrypted_vmk


class RemoteItemStore(ItemStore):
    """Vault REST API client.

    Authentication is the session cookie the API issued at login; pass a
    ``ClientSession`` that already carries it, or let the store create one
    (closed by ``close()`` / ``async with``).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        config: Optional[VaultConfig] = None,
    ):
        self._config = config or VaultConfig.from_env()
        self._base_url = (base_url or self._config.api_url).rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RemoteItemStore":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
                json_serialize=lambda obj: orjson.dumps(obj).decode("utf-8"),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None if empty).

        Raises:
            StoreError: On a non-2xx response or a connection failure.
        """
        url = f"{self._base_url}{path}"
        try:
            async with self._client().request(method, url, json=payload) as resp:
                raw = await resp.read()
                body: Any = None
                if raw:
                    try:
                        body = orjson.loads(raw)
                    except orjson.JSONDecodeError:
                        body = raw.decode("utf-8", errors="replace")
                if resp.status >= 400:
                    error = body.get("error") if isinstance(body, dict) else None
                    logger.warning(
                        "Vault API %s %s failed: HTTP %d", method, path, resp.status,
                    )
                    raise StoreError(
                        error or f"HTTP {resp.status}", status=resp.status,
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise StoreError(f"vault API unreachable: {err}") from err

    async def list_items(self) -> list[StoredItem]:
        body = await self._request("GET", "/api/vault")
        return [StoredItem.model_validate(item) for item in body or []]

    async def create_item(self, encrypted_blob: str) -> StoredItem:
        body = await self._request(
            "POST", "/api/vault", {"encryptedBlob": encrypted_blob},
        )
        return StoredItem.model_validate(body)

    async def update_item(self, item_id: str, encrypted_blob: str) -> StoredItem:
        body = await self._request(
            "PUT", f"/api/vault/{item_id}", {"encryptedBlob": encrypted_blob},
        )
        return StoredItem.model_validate(body)

    async def delete_item(self, item_id: str) -> None:
        await self._request("DELETE", f"/api/vault/{item_id}")

    async def get_encrypted_vmk(self) -> Optional[str]:
        body = await self._request("GET", "/api/auth/me")
        if isinstance(body, dict):
            return body.get("encryptedVMK")
        return None
