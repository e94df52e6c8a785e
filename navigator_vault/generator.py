"""
Password Generator — random passwords drawn client-side.

Characters are picked with ``secrets.choice``, so every character of the
charset is equally likely (no modulo bias).
"""
import secrets
from typing import Optional

from pydantic import BaseModel, Field

LOWER = "abcdefghijklmnopqrstuvwxyz"
UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
DIGITS = "0123456789"
SYMBOLS = "!@#$%^&*()-_=+[]{};:,.<>/?"
LOOK_ALIKES = frozenset("0Oo1lI")


class PasswordPolicy(BaseModel):
    """Which characters a generated password may use, and how many."""

    length: int = Field(default=16, ge=8, le=64)
    lower: bool = True
    upper: bool = True
    digits: bool = True
    symbols: bool = True
    exclude_look_alikes: bool = False

    def charset(self) -> str:
        chars = ""
        if self.lower:
            chars += LOWER
        if self.upper:
            chars += UPPER
        if self.digits:
            chars += DIGITS
        if self.symbols:
            chars += SYMBOLS
        if self.exclude_look_alikes:
            chars = "".join(ch for ch in chars if ch not in LOOK_ALIKES)
        return chars


def generate_password(policy: Optional[PasswordPolicy] = None, **overrides) -> str:
    """Generate a random password.

    Args:
        policy: Generation policy; defaults to ``PasswordPolicy()``.
        **overrides: Policy fields to override (validated).

    Returns:
        The generated password.

    Raises:
        ValueError: If the policy selects no characters at all.
    """
    policy = policy or PasswordPolicy()
    if overrides:
        policy = PasswordPolicy.model_validate(
            {**policy.model_dump(), **overrides}
        )
    charset = policy.charset()
    if not charset:
        raise ValueError("Password policy selects no characters")
    return "".join(secrets.choice(charset) for _ in range(policy.length))
