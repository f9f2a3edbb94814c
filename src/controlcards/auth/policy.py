"""Roles and the static role policy table.

Learn: Roles are a closed enumeration parsed once at the boundary
(token claims, CLI/shell input). Every permission check below works on
the enum, never on raw strings.
"""

import enum

from controlcards.errors import AuthorizationError, ValidationError


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    CONTROLLER = "controller"

    @classmethod
    def parse(cls, value) -> "Role":
        """Parse a role name, rejecting anything outside the enumeration."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Invalid role: {value!r}")


class Action(str, enum.Enum):
    ACCOUNT_REGISTER = "account.register"
    ACCOUNT_LIST = "account.list"
    ACCOUNT_LIST_EXECUTORS = "account.list_executors"
    ACCOUNT_LIST_CONTROLLERS = "account.list_controllers"
    ACCOUNT_UPDATE = "account.update"
    ACCOUNT_DELETE = "account.delete"
    ACCOUNT_CHANGE_PASSWORD = "account.change_password"
    CARD_CREATE = "card.create"
    CARD_UPDATE = "card.update"
    CARD_DELETE = "card.delete"
    CARD_READ = "card.read"
    CARD_LIST = "card.list"


_ADMIN = frozenset({Role.ADMIN})
_STAFF = frozenset({Role.ADMIN, Role.CONTROLLER})
_ANY = frozenset(Role)

POLICY: dict[Action, frozenset[Role]] = {
    Action.ACCOUNT_REGISTER: _ADMIN,
    Action.ACCOUNT_LIST: _ADMIN,
    Action.ACCOUNT_LIST_EXECUTORS: _STAFF,
    Action.ACCOUNT_LIST_CONTROLLERS: _STAFF,
    Action.ACCOUNT_UPDATE: _ADMIN,
    Action.ACCOUNT_DELETE: _ADMIN,
    Action.ACCOUNT_CHANGE_PASSWORD: _ADMIN,
    Action.CARD_CREATE: _STAFF,
    Action.CARD_UPDATE: _STAFF,
    Action.CARD_DELETE: _STAFF,
    # users are further scoped to cards they execute
    Action.CARD_READ: _ANY,
    Action.CARD_LIST: _ANY,
}

# Roles that see every card rather than only their own
FULL_CARD_ACCESS = _STAFF


def is_allowed(role: Role, action: Action) -> bool:
    return role in POLICY[action]


def require(role: Role, action: Action) -> None:
    """Raise AuthorizationError unless ``role`` may perform ``action``."""
    if not is_allowed(role, action):
        allowed = " or ".join(sorted(r.value for r in POLICY[action]))
        raise AuthorizationError(
            f"Only {allowed} can perform {action.value}"
        )
