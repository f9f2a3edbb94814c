"""Token → caller identity.

Learn: This is the first step of every gated operation. The token is
decoded before any store access; a failure here aborts the call with
AuthenticationError and never reveals why the token was rejected.
"""

from dataclasses import dataclass
from typing import Optional

from controlcards.auth.jwt import TokenError, verify_token
from controlcards.auth.policy import FULL_CARD_ACCESS, Action, Role, require
from controlcards.config import Settings
from controlcards.errors import AuthenticationError


@dataclass(frozen=True)
class CurrentIdentity:
    """Represents the authenticated account making the call."""

    account_id: int
    role: Role

    def require(self, action: Action) -> None:
        require(self.role, action)

    @property
    def sees_all_cards(self) -> bool:
        return self.role in FULL_CARD_ACCESS


def authenticate(
    token: Optional[str], cfg: Optional[Settings] = None
) -> CurrentIdentity:
    """Decode a bearer token into the caller's identity.

    cfg defaults to the process-wide settings.
    """
    if not token:
        raise AuthenticationError("Authentication required")
    try:
        claims = verify_token(token, cfg)
    except TokenError as e:
        raise AuthenticationError(str(e))
    return CurrentIdentity(account_id=claims.account_id, role=claims.role)
