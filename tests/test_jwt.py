"""Token issuance and verification."""

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from controlcards.auth.identity import authenticate
from controlcards.auth.jwt import TokenError, issue_token, verify_token
from controlcards.auth.policy import Role
from controlcards.config import settings
from controlcards.errors import AuthenticationError


def test_issue_then_verify_returns_subject_and_role():
    token = issue_token(42, Role.CONTROLLER)
    claims = verify_token(token)
    assert claims.account_id == 42
    assert claims.role is Role.CONTROLLER


def test_expiry_is_exactly_24_hours():
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    token = issue_token(1, Role.ADMIN, now=now)
    payload = pyjwt.decode(
        token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        options={"verify_exp": False},
    )
    assert payload["exp"] - payload["iat"] == 24 * 3600


def test_expired_token_rejected():
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = issue_token(1, Role.ADMIN, now=issued)
    with pytest.raises(TokenError):
        verify_token(token)


def test_token_still_valid_just_before_expiry():
    issued = datetime.now(timezone.utc) - timedelta(hours=23, minutes=59)
    claims = verify_token(issue_token(7, Role.USER, now=issued))
    assert claims.account_id == 7


def test_tampered_token_rejected():
    token = issue_token(1, Role.USER)
    header, payload, signature = token.split(".")
    forged = pyjwt.encode(
        {"sub": "1", "role": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret-that-is-long-enough-for-hs256",
        algorithm="HS256",
    )
    with pytest.raises(TokenError):
        verify_token(f"{header}.{forged.split('.')[1]}.{signature}")
    with pytest.raises(TokenError):
        verify_token(forged)


def test_all_failures_share_one_message():
    expired = issue_token(1, Role.ADMIN, now=datetime.now(timezone.utc) - timedelta(days=2))
    messages = set()
    for bad in ("garbage", "a.b.c", expired):
        with pytest.raises(TokenError) as exc:
            verify_token(bad)
        messages.add(str(exc.value))
    assert len(messages) == 1


def test_unknown_role_claim_rejected():
    token = pyjwt.encode(
        {"sub": "1", "role": "superuser", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError):
        verify_token(token)


def test_missing_role_claim_rejected():
    token = pyjwt.encode(
        {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError):
        verify_token(token)


def test_authenticate_maps_token_errors():
    with pytest.raises(AuthenticationError):
        authenticate("garbage")
    with pytest.raises(AuthenticationError, match="required"):
        authenticate(None)
    identity = authenticate(issue_token(3, Role.USER))
    assert identity.account_id == 3
    assert identity.role is Role.USER
    assert not identity.sees_all_cards
