"""Pydantic schemas for control cards.

- CardInput: the fields a caller supplies on create/update
- CardRead: what the operation layer returns
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CardInput(BaseModel):
    card_number: int = Field(..., ge=1)
    year: int = Field(..., ge=1, le=9999)
    executor_id: int
    reporter: str
    summary: str
    document_reference: str

    # Workflow: free text or date strings, all optional
    return_to: Optional[str] = None
    execution_deadline: Optional[str] = None
    execution_period_type: Optional[str] = None
    extended_deadline: Optional[str] = None
    resolution: Optional[str] = None
    department: Optional[str] = None

    # Free-text name, replaced by the account's username when controller_id is set
    controller: Optional[str] = None
    controller_id: Optional[int] = None


class CardRead(BaseModel):
    id: int
    card_number: int
    year: int
    executor: str
    reporter: str
    summary: str
    document_reference: str
    created_by_id: Optional[int]
    executor_id: Optional[int]
    controller_id: Optional[int]
    controller: Optional[str]
    return_to: Optional[str]
    execution_deadline: Optional[str]
    execution_period_type: Optional[str]
    extended_deadline: Optional[str]
    resolution: Optional[str]
    department: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
