"""
SessionVault — decrypted view of an account's vault items.

Provides the record-level API on top of an ``ItemStore``:
- ``load()`` — fetch every item and decrypt it into the in-memory cache
- ``records()`` / ``get(id)`` — read decrypted records
- ``add(record)`` / ``update(id, record)`` — encrypt and persist
- ``delete(id)`` — remove from store and cache

Security Note:
    Never log plaintext or ciphertext values. Only log item ids and
    counts. Decrypted records exist in process memory while the vault is
    loaded; ``clear()`` drops them.
"""
import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from .crypto.items import decrypt_item, encrypt_item
from .exceptions import DeserializationError, NotAuthenticated, VaultError
from .records import VaultRecord
from .session import KeySession
from .store import ItemStore, StoredItem

logger = logging.getLogger("navigator.vault")


class SessionVault:
    """Vault items for the account bound to a ``KeySession``.

    Every operation reads the VMK from the session immediately before the
    cryptographic call that needs it.
    """

    def __init__(self, session: KeySession, store: ItemStore):
        self._session = session
        self._store = store
        self._cache: dict[str, VaultRecord] = {}
        self._failed: list[str] = []

    def _require_key(self) -> bytes:
        return self._session.require_vmk()

    @property
    def failed_ids(self) -> list[str]:
        """Ids of items the last ``load()`` could not decrypt."""
        return list(self._failed)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self) -> list[VaultRecord]:
        """Fetch all items from the store and decrypt them.

        Items that fail to decrypt are logged and skipped; their ids are
        kept in ``failed_ids``.

        Returns:
            Decrypted records, in store order.

        Raises:
            NotAuthenticated: If the session holds no VMK.
        """
        self._require_key()
        items = await self._store.list_items()
        cache: dict[str, VaultRecord] = {}
        failed: list[str] = []
        for item in items:
            try:
                record = await self._decrypt(item)
            except NotAuthenticated:
                raise
            except VaultError as err:
                logger.error(
                    "Failed to decrypt vault item id=%s: %s",
                    item.id, type(err).__name__,
                )
                failed.append(item.id)
                continue
            cache[item.id] = record
        self._cache = cache
        self._failed = failed
        logger.info(
            "Vault loaded for session=%s: %d item(s), %d failed",
            self._session.session_id, len(cache), len(failed),
        )
        return list(cache.values())

    def records(self) -> dict[str, VaultRecord]:
        return dict(self._cache)

    def get(self, item_id: str, default: Optional[VaultRecord] = None) -> Optional[VaultRecord]:
        return self._cache.get(item_id, default)

    async def add(self, record: VaultRecord) -> StoredItem:
        """Encrypt a new record and create it in the store."""
        envelope = await self._encrypt(record)
        item = await self._store.create_item(envelope)
        self._cache[item.id] = record
        logger.debug("Vault add: id=%s", item.id)
        return item

    async def update(self, item_id: str, record: VaultRecord) -> StoredItem:
        """Re-encrypt a record under a fresh nonce and replace it."""
        envelope = await self._encrypt(record)
        item = await self._store.update_item(item_id, envelope)
        self._cache[item_id] = record
        logger.debug("Vault update: id=%s", item_id)
        return item

    async def delete(self, item_id: str) -> None:
        await self._store.delete_item(item_id)
        self._cache.pop(item_id, None)
        logger.debug("Vault delete: id=%s", item_id)

    def clear(self) -> None:
        self._cache = {}
        self._failed = []

    # ------------------------------------------------------------------
    # Crypto helpers
    # ------------------------------------------------------------------

    async def _encrypt(self, record: VaultRecord) -> str:
        key = self._require_key()
        return await asyncio.to_thread(encrypt_item, key, record.to_plain())

    async def _decrypt(self, item: StoredItem) -> VaultRecord:
        key = self._require_key()
        data = await asyncio.to_thread(decrypt_item, key, item.encrypted_blob)
        try:
            return VaultRecord.model_validate(data)
        except ValidationError as err:
            raise DeserializationError(
                f"item {item.id} is not a vault record"
            ) from err
