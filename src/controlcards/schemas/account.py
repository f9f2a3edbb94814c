"""Pydantic schemas for accounts.

Learn: AccountRead is the only shape an account ever leaves the service
layer in. It has no password_hash field, so the hash cannot leak even if
a caller serializes the whole object.
"""

from datetime import datetime

from pydantic import BaseModel

from controlcards.auth.policy import Role


class AccountRead(BaseModel):
    id: int
    username: str
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}
