"""
Key Session — the single transient slot holding the vault master key.

The VMK lives here, and only here, between login and logout. It is never
written to durable storage and never sent to the server. Operations that
need it receive the session explicitly and call ``require_vmk()`` right
before use, never caching the key across an ``await``: the slot may be
cleared at any suspension point.
"""
import uuid
import asyncio
import logging
from typing import Optional, Any
from datetime import datetime, timezone

from .crypto.keys import generate_vmk, key_bytes, unwrap_vmk, wrap_vmk
from .exceptions import InvalidCredentials, NotAuthenticated, VaultError

logger = logging.getLogger("navigator.vault")


class KeySession:
    """Session-scoped holder of the vault master key.

    The slot is either empty (not logged in) or holds the base64 VMK.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        identity: Optional[Any] = None,
        vmk: Optional[str] = None,
    ) -> None:
        self._id_ = id or uuid.uuid4().hex
        self._identity = identity
        self._vmk: Optional[str] = None
        self._created = datetime.now(timezone.utc)
        if vmk is not None:
            self.set_vmk(vmk)

    def __repr__(self) -> str:
        return (
            f'<Vault-Session [id:{self._id_}, '
            f'authenticated:{self.is_authenticated}]>'
        )

    # --- Properties ---

    @property
    def session_id(self) -> str:
        return self._id_

    @property
    def identity(self) -> Optional[Any]:
        return self._identity

    @property
    def created(self) -> datetime:
        return self._created

    @property
    def is_authenticated(self) -> bool:
        return self._vmk is not None

    @property
    def vmk(self) -> Optional[str]:
        """Base64 VMK, or None when not logged in."""
        return self._vmk

    # --- Slot access ---

    def require_vmk(self) -> bytes:
        """Return the raw VMK bytes.

        Raises:
            NotAuthenticated: If the slot is empty.
        """
        if self._vmk is None:
            raise NotAuthenticated()
        return key_bytes(self._vmk)

    def set_vmk(self, vmk: str) -> None:
        """Place a VMK in the slot (validated as a 32-byte key)."""
        key_bytes(vmk)
        self._vmk = vmk

    def invalidate(self) -> None:
        """Clear the VMK slot."""
        self._vmk = None

    # --- Account flows ---

    async def signup(self, passphrase: str, identity: Optional[Any] = None) -> str:
        """Create a new VMK and hold it in the session.

        Args:
            passphrase: Account password the VMK is wrapped under.
            identity: Optional account identity to attach to the session.

        Returns:
            Password envelope to store server-side as the account's
            encrypted VMK.
        """
        vmk = generate_vmk()
        envelope = await asyncio.to_thread(wrap_vmk, vmk, passphrase)
        self._vmk = vmk
        if identity is not None:
            self._identity = identity
        logger.info("Vault session %s: new master key created", self._id_)
        return envelope

    async def login(
        self,
        encrypted_vmk: str,
        passphrase: str,
        identity: Optional[Any] = None,
    ) -> None:
        """Unwrap the account's VMK and hold it in the session.

        Raises:
            InvalidCredentials: For any failure, whether the passphrase or
                the stored envelope is at fault.
        """
        try:
            vmk = await asyncio.to_thread(unwrap_vmk, encrypted_vmk, passphrase)
        except VaultError as err:
            logger.warning(
                "Vault session %s: unlock failed (%s)",
                self._id_, type(err).__name__,
            )
            raise InvalidCredentials() from None
        self._vmk = vmk
        if identity is not None:
            self._identity = identity
        logger.info("Vault session %s: unlocked", self._id_)

    def logout(self) -> None:
        self.invalidate()
        logger.info("Vault session %s: locked", self._id_)
