"""Tests for the password generator."""
import pytest

from navigator_vault.generator import (
    DIGITS,
    LOOK_ALIKES,
    LOWER,
    SYMBOLS,
    UPPER,
    PasswordPolicy,
    generate_password,
)


class TestPasswordPolicy:
    def test_default_charset_has_all_classes(self):
        charset = PasswordPolicy().charset()
        for group in (LOWER, UPPER, DIGITS, SYMBOLS):
            assert set(group) <= set(charset)

    def test_look_alikes_removed(self):
        charset = PasswordPolicy(exclude_look_alikes=True).charset()
        assert not LOOK_ALIKES & set(charset)

    @pytest.mark.parametrize("length", [7, 65])
    def test_length_bounds(self, length):
        with pytest.raises(ValueError):
            PasswordPolicy(length=length)


class TestGeneratePassword:
    def test_default_length(self):
        assert len(generate_password()) == 16

    def test_length_override(self):
        assert len(generate_password(length=40)) == 40

    def test_only_digits(self):
        password = generate_password(lower=False, upper=False, symbols=False, length=32)
        assert set(password) <= set(DIGITS)

    def test_policy_with_overrides(self):
        policy = PasswordPolicy(length=8, symbols=False)
        password = generate_password(policy, length=12)
        assert len(password) == 12
        assert not set(password) & set(SYMBOLS)

    def test_no_look_alikes(self):
        password = generate_password(exclude_look_alikes=True, length=64)
        assert not LOOK_ALIKES & set(password)

    def test_empty_charset(self):
        with pytest.raises(ValueError):
            generate_password(lower=False, upper=False, digits=False, symbols=False)

    def test_passwords_differ(self):
        assert generate_password(length=32) != generate_password(length=32)
