"""
Vault Transfer — export to a bundle, import a bundle into an account.

Export snapshots the account's item envelopes verbatim (still encrypted
under the source VMK) and optionally wraps the live VMK under a transfer
passphrase.

Import is a batch over the bundled items. Each item starts ``pending`` and
ends in exactly one terminal state: ``uploaded``, ``skipped_duplicate`` or
``failed``. One item's failure never stops the batch. Two modes:

- quick: upload envelopes unchanged (same account, same VMK).
- rekey: recover the source VMK once for the whole bundle, then per item
  decrypt under it, re-encrypt under the session VMK and upload.

Duplicates are detected by envelope text. A copy whose twin is still
uploading waits for it: it is skipped if the twin was stored and uploaded
itself if the twin failed, so the summary does not depend on how many
items run at once. In rekey mode that text is the
freshly encrypted envelope, whose random nonce makes a collision between
distinct uploads practically impossible, so duplicate detection there is
probabilistic rather than exact.

Security Note:
    Plaintext exists in memory only while one item is being re-encrypted.
    Never log plaintext, keys, passphrases or envelope text.
"""
import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from .bundle import TransferBundle, default_export_filename, read_bundle, write_bundle
from .config import VaultConfig
from .crypto.items import decrypt_item, encrypt_item
from .crypto.keys import unwrap_vmk, wrap_vmk
from .exceptions import (
    NotAuthenticated,
    PerItemFailure,
    SourceKeyUnavailable,
    StoreError,
    VaultError,
)
from .session import KeySession
from .store import ItemStore, StoredItem

logger = logging.getLogger("navigator.vault")

DECRYPT_FAILED = "decrypt_failed"
UPLOAD_FAILED = "upload_failed"


class ImportMode(str, Enum):
    QUICK = "quick"
    REKEY = "rekey"


class ItemState(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


class ItemOutcome(BaseModel):
    """Progress of one bundled item through the import."""

    index: int
    item_id: Optional[str] = None
    state: ItemState = ItemState.PENDING
    reason: Optional[str] = None
    detail: Optional[str] = None
    uploaded_id: Optional[str] = None

    @property
    def label(self) -> str:
        return self.item_id or f"index:{self.index}"

    @property
    def error(self) -> Optional[str]:
        if self.state is not ItemState.FAILED:
            return None
        return str(PerItemFailure(self.reason, self.label, self.detail))

    def transition(self, state: ItemState, **fields) -> None:
        """Move to a terminal state; terminal states are absorbing."""
        if self.state is not ItemState.PENDING:
            raise RuntimeError(
                f"item {self.label} already {self.state.value}"
            )
        if state is ItemState.PENDING:
            raise ValueError("cannot transition back to pending")
        self.state = state
        for name, value in fields.items():
            setattr(self, name, value)


class ImportSummary(BaseModel):
    imported: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    outcomes: list[ItemOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[ItemOutcome]) -> "ImportSummary":
        return cls(
            imported=sum(o.state is ItemState.UPLOADED for o in outcomes),
            skipped=sum(o.state is ItemState.SKIPPED_DUPLICATE for o in outcomes),
            errors=[o.error for o in outcomes if o.state is ItemState.FAILED],
            outcomes=outcomes,
        )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

async def export_bundle(
    session: KeySession,
    store: ItemStore,
    passphrase: Optional[str] = None,
) -> TransferBundle:
    """Snapshot the account's items into a transfer bundle.

    Args:
        session: Session holding the live VMK (needed only with a passphrase).
        store: Source item store.
        passphrase: Transfer passphrase. When given, the live VMK is wrapped
            under it and embedded as ``vmkEnvelope``.

    Returns:
        New TransferBundle. The account's server-side wrapped VMK is
        included as a fallback when the store provides it.

    Raises:
        NotAuthenticated: If a passphrase is given and the session is locked.
        ValueError: If the passphrase is empty.
    """
    if passphrase is not None:
        session.require_vmk()
    blobs = await store.list_items()
    try:
        encrypted_vmk = await store.get_encrypted_vmk()
    except StoreError as err:
        logger.warning(
            "Export: wrapped VMK unavailable from store (%s)", err,
        )
        encrypted_vmk = None

    vmk_envelope = None
    if passphrase is not None:
        vmk = session.require_vmk()
        vmk_envelope = await asyncio.to_thread(wrap_vmk, vmk, passphrase)

    bundle = TransferBundle(
        protected_with_passphrase=vmk_envelope is not None,
        vmk_envelope=vmk_envelope,
        encrypted_vmk=encrypted_vmk,
        blobs=blobs,
    )
    logger.info(
        "Export: %d item(s), protected=%s, fallback_vmk=%s",
        len(blobs), bundle.protected_with_passphrase, encrypted_vmk is not None,
    )
    return bundle


async def export_to_file(
    session: KeySession,
    store: ItemStore,
    path: Optional[Union[str, Path]] = None,
    passphrase: Optional[str] = None,
) -> Path:
    """Export and write the bundle to ``path`` (default: timestamped name)."""
    bundle = await export_bundle(session, store, passphrase=passphrase)
    target = path or default_export_filename(bundle.created_at)
    return await write_bundle(bundle, target)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

async def resolve_source_key(
    bundle: TransferBundle,
    passphrase: Optional[str] = None,
    account_password: Optional[str] = None,
) -> str:
    """Recover the VMK the bundle's items were encrypted under.

    Tries the passphrase envelope first, then the fallback wrapped VMK. A
    wrong passphrase and a corrupt envelope are reported the same way.

    Returns:
        Base64 source VMK.

    Raises:
        SourceKeyUnavailable: If no path succeeds.
    """
    problems: list[str] = []
    if bundle.vmk_envelope:
        if passphrase:
            try:
                return await asyncio.to_thread(
                    unwrap_vmk, bundle.vmk_envelope, passphrase,
                )
            except VaultError as err:
                logger.warning(
                    "Import: export passphrase rejected (%s)", type(err).__name__,
                )
                problems.append("invalid_export_passphrase_or_corrupt_export")
        else:
            problems.append("export_passphrase_required")
    if bundle.encrypted_vmk:
        if account_password:
            try:
                return await asyncio.to_thread(
                    unwrap_vmk, bundle.encrypted_vmk, account_password,
                )
            except VaultError as err:
                logger.warning(
                    "Import: account password rejected (%s)", type(err).__name__,
                )
                problems.append("invalid_account_password_or_corrupt_export")
        else:
            problems.append("account_password_required_to_decrypt_vmk")
    if not problems:
        problems.append("bundle_has_no_wrapped_vmk")
    raise SourceKeyUnavailable(
        "could_not_obtain_source_vmk: " + ", ".join(problems)
    )


async def import_bundle(
    bundle: TransferBundle,
    session: KeySession,
    store: ItemStore,
    mode: Union[ImportMode, str] = ImportMode.REKEY,
    passphrase: Optional[str] = None,
    account_password: Optional[str] = None,
    concurrency: Optional[int] = None,
    dedupe_against_store: bool = False,
) -> ImportSummary:
    """Import every item of a bundle into ``store``.

    Args:
        bundle: Parsed transfer bundle.
        session: Destination session (its VMK encrypts rekeyed items).
        store: Destination item store.
        mode: ``quick`` or ``rekey``.
        passphrase: Transfer passphrase for a protected bundle.
        account_password: Source account password for the fallback VMK.
        concurrency: Items processed at once (default from VaultConfig).
        dedupe_against_store: Treat envelopes already in ``store`` as
            duplicates.

    Returns:
        ImportSummary covering every item's terminal state, in bundle order.

    Raises:
        SourceKeyUnavailable: Rekey mode and no source key; nothing uploaded.
        NotAuthenticated: Rekey mode and the session is (or becomes)
            locked. Items already uploaded stay uploaded.
    """
    mode = ImportMode(mode)
    if concurrency is None:
        concurrency = VaultConfig.from_env().import_concurrency
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    source_key: Optional[str] = None
    if mode is ImportMode.REKEY:
        source_key = await resolve_source_key(
            bundle, passphrase=passphrase, account_password=account_password,
        )
        session.require_vmk()

    logger.info(
        "Import started: mode=%s items=%d concurrency=%d",
        mode.value, len(bundle.blobs), concurrency,
    )

    outcomes = [
        ItemOutcome(index=idx, item_id=blob.id)
        for idx, blob in enumerate(bundle.blobs)
    ]
    uploaded: set[str] = set()
    in_flight: dict[str, asyncio.Future] = {}
    if dedupe_against_store:
        uploaded.update(item.encrypted_blob for item in await store.list_items())
    semaphore = asyncio.Semaphore(concurrency)

    async def claim(envelope: str) -> bool:
        """Reserve ``envelope`` for upload.

        While another copy is being uploaded, wait for that upload to
        settle: a stored copy makes this one a duplicate, a failed one
        hands the claim over.
        """
        while envelope not in uploaded:
            pending = in_flight.get(envelope)
            if pending is None:
                in_flight[envelope] = asyncio.get_running_loop().create_future()
                return True
            await pending
        return False

    def release(envelope: str, stored: bool) -> None:
        if stored:
            uploaded.add(envelope)
        pending = in_flight.pop(envelope)
        if not pending.done():
            pending.set_result(stored)

    async def rekey(blob: StoredItem) -> str:
        record = await asyncio.to_thread(decrypt_item, source_key, blob.encrypted_blob)
        dest_key = session.require_vmk()
        return await asyncio.to_thread(encrypt_item, dest_key, record)

    async def process(outcome: ItemOutcome, blob: StoredItem) -> None:
        async with semaphore:
            envelope = blob.encrypted_blob
            if mode is ImportMode.REKEY:
                try:
                    envelope = await rekey(blob)
                except NotAuthenticated:
                    raise
                except VaultError as err:
                    outcome.transition(
                        ItemState.FAILED, reason=DECRYPT_FAILED, detail=str(err),
                    )
                    logger.error(
                        "Import: decrypt failed for item %s: %s",
                        outcome.label, type(err).__name__,
                    )
                    return
            if not await claim(envelope):
                outcome.transition(ItemState.SKIPPED_DUPLICATE)
                return
            stored = False
            try:
                created = await store.create_item(envelope)
                stored = True
            except Exception as err:
                outcome.transition(
                    ItemState.FAILED, reason=UPLOAD_FAILED, detail=str(err),
                )
                logger.error(
                    "Import: upload failed for item %s: %s",
                    outcome.label, err,
                )
                return
            finally:
                release(envelope, stored)
            outcome.transition(ItemState.UPLOADED, uploaded_id=created.id)

    tasks = [
        asyncio.create_task(process(outcome, blob))
        for outcome, blob in zip(outcomes, bundle.blobs)
    ]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    summary = ImportSummary.from_outcomes(outcomes)
    logger.info(
        "Import complete: imported=%d skipped=%d errors=%d",
        summary.imported, summary.skipped, len(summary.errors),
    )
    return summary


async def import_from_file(
    path: Union[str, Path],
    session: KeySession,
    store: ItemStore,
    **kwargs,
) -> ImportSummary:
    """Read a bundle file and import it; see ``import_bundle``."""
    bundle = await read_bundle(path)
    return await import_bundle(bundle, session, store, **kwargs)
