"""Role enumeration and the static policy table."""

import pytest

from controlcards.auth.policy import POLICY, Action, Role, is_allowed, require
from controlcards.errors import AuthorizationError, ValidationError


def test_parse_known_roles():
    assert Role.parse("admin") is Role.ADMIN
    assert Role.parse("user") is Role.USER
    assert Role.parse("controller") is Role.CONTROLLER
    assert Role.parse(Role.USER) is Role.USER


@pytest.mark.parametrize("value", ["Admin", "root", "", None])
def test_parse_rejects_anything_else(value):
    with pytest.raises(ValidationError):
        Role.parse(value)


def test_every_action_has_a_policy_entry():
    assert set(POLICY) == set(Action)


def test_account_administration_is_admin_only():
    for action in (
        Action.ACCOUNT_REGISTER,
        Action.ACCOUNT_LIST,
        Action.ACCOUNT_UPDATE,
        Action.ACCOUNT_DELETE,
        Action.ACCOUNT_CHANGE_PASSWORD,
    ):
        assert is_allowed(Role.ADMIN, action)
        assert not is_allowed(Role.CONTROLLER, action)
        assert not is_allowed(Role.USER, action)


def test_card_writes_exclude_users():
    for action in (Action.CARD_CREATE, Action.CARD_UPDATE, Action.CARD_DELETE):
        assert is_allowed(Role.ADMIN, action)
        assert is_allowed(Role.CONTROLLER, action)
        assert not is_allowed(Role.USER, action)


def test_require_raises_authorization_error():
    with pytest.raises(AuthorizationError, match="account.register"):
        require(Role.CONTROLLER, Action.ACCOUNT_REGISTER)
    require(Role.CONTROLLER, Action.ACCOUNT_LIST_EXECUTORS)
