"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.
"""

from typing import Optional

import bcrypt

from controlcards.config import Settings, settings
from controlcards.errors import ValidationError


class PasswordHashError(Exception):
    """Raised when a stored hash is structurally invalid."""


def validate_password(password: str, cfg: Optional[Settings] = None) -> None:
    """Reject passwords shorter than the configured minimum."""
    cfg = cfg or settings
    if len(password) < cfg.min_password_length:
        raise ValidationError(
            f"Password must be at least {cfg.min_password_length} "
            "characters long"
        )


def hash_password(password: str, cfg: Optional[Settings] = None) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    cfg = cfg or settings
    validate_password(password, cfg)
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=cfg.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash.

    Returns False on a plain mismatch. Raises PasswordHashError when the
    stored hash cannot be parsed as a bcrypt hash at all.
    """
    pw_bytes = password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise PasswordHashError(f"Stored password hash is invalid: {e}")
