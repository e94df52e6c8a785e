"""Shared fixtures for navigator_vault tests."""
import base64

import pytest

from navigator_vault.crypto.envelope import decode, encode
from navigator_vault.crypto.keys import generate_vmk
from navigator_vault.session import KeySession
from navigator_vault.store import MemoryItemStore


def flip_bit(envelope: str, segment: int, byte_index: int = 0, bit: int = 0) -> str:
    """Return ``envelope`` with one bit flipped inside a decoded segment."""
    parts = decode(envelope, envelope.count(":") + 1)
    target = bytearray(parts[segment])
    target[byte_index] ^= 1 << bit
    parts[segment] = bytes(target)
    return encode(parts)


@pytest.fixture
def vmk():
    """A fresh base64 vault master key."""
    return generate_vmk()


@pytest.fixture
def other_key():
    """A random 32-byte key unrelated to ``vmk``."""
    return base64.b64encode(bytes(range(32))).decode("ascii")


@pytest.fixture
def session(vmk):
    """An unlocked KeySession holding ``vmk``."""
    return KeySession(identity="alice@example.com", vmk=vmk)


@pytest.fixture
def store():
    """An empty in-memory item store."""
    return MemoryItemStore()


@pytest.fixture
def record():
    """A typical password entry."""
    return {
        "title": "Mail",
        "username": "alice",
        "password": "s3cr3t!",
        "url": "https://mail.example.com",
        "notes": "",
        "tags": ["work", "email"],
        "folder": "Personal",
    }


@pytest.fixture
def flip():
    """Bit-flipping helper for tamper tests."""
    return flip_bit
