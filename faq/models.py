"""
FAQ Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

MAX_QUESTION_LENGTH = 500
MAX_ANSWER_LENGTH = 2000
DEFAULT_CATEGORY = "General"


class FaqCreate(BaseModel):
    """Lengths are checked by the service after trimming."""
    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None


class FaqUpdate(FaqCreate):
    pass


class FaqStatusUpdate(BaseModel):
    is_active: Optional[bool] = None


class FaqResponse(BaseModel):
    id: str
    question: str
    answer: str
    category: str
    is_active: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
