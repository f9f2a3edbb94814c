"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the account id (sub), its role and a hard expiry
exactly 24 hours after issuance. There is no refresh token; when it
expires, the user logs in again.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from controlcards.auth.policy import Role
from controlcards.config import Settings, settings
from controlcards.errors import ValidationError


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass(frozen=True)
class Claims:
    """Decoded token payload."""

    account_id: int
    role: Role
    expires_at: datetime


def issue_token(
    account_id: int,
    role: Role,
    now: Optional[datetime] = None,
    cfg: Optional[Settings] = None,
) -> str:
    """Create a signed access token for an account."""
    cfg = cfg or settings
    issued = now or datetime.now(timezone.utc)
    payload = {
        # PyJWT requires "sub" to be a string
        "sub": str(account_id),
        "role": Role(role).value,
        "iat": issued,
        "exp": issued + timedelta(hours=cfg.token_expire_hours),
    }
    try:
        return jwt.encode(
            payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm
        )
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise TokenError(f"Failed to generate token: {e}")


def verify_token(token: str, cfg: Optional[Settings] = None) -> Claims:
    """Verify and decode a JWT token.

    Returns the claims on success. Any structural, signature, expiry or
    payload problem raises the same TokenError so the caller cannot tell
    which check failed.
    """
    cfg = cfg or settings
    try:
        payload = jwt.decode(
            token,
            cfg.jwt_secret,
            algorithms=[cfg.jwt_algorithm],
            options={"require": ["sub", "role", "exp"]},
        )
        return Claims(
            account_id=int(payload["sub"]),
            role=Role.parse(payload["role"]),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (jwt.InvalidTokenError, ValidationError, ValueError, TypeError):
        raise TokenError("Invalid or expired token")
