"""Password hashing: bcrypt round-trips and input rules."""

import pytest

from controlcards.auth.password import (
    PasswordHashError,
    hash_password,
    verify_password,
)
from controlcards.errors import ValidationError


def test_hash_then_verify():
    hashed = hash_password("correct horse")
    assert hashed.startswith("$2")
    assert verify_password("correct horse", hashed) is True


def test_verify_wrong_password_is_false_not_error():
    hashed = hash_password("correct horse")
    assert verify_password("battery staple", hashed) is False


def test_hash_is_salted():
    """Same password, different hashes, both verify."""
    a = hash_password("same-password")
    b = hash_password("same-password")
    assert a != b
    assert verify_password("same-password", a)
    assert verify_password("same-password", b)


def test_short_password_rejected_before_hashing():
    with pytest.raises(ValidationError, match="at least 6"):
        hash_password("abc12")


def test_six_characters_is_enough():
    assert verify_password("abc123", hash_password("abc123"))


def test_length_counts_characters_not_bytes():
    """Six Cyrillic letters are twelve UTF-8 bytes but still six characters."""
    with pytest.raises(ValidationError):
        hash_password("пароль"[:5])
    assert verify_password("пароль", hash_password("пароль"))


def test_malformed_stored_hash_is_a_distinct_failure():
    with pytest.raises(PasswordHashError):
        verify_password("whatever", "not-a-bcrypt-hash")
