"""
Site settings Pydantic models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    phone_number: Optional[str] = Field(None, alias="phoneNumber", description="WhatsApp number for confirmations")
    email: Optional[str] = None


class ContactResponse(BaseModel):
    phone: str
    email: Optional[str]
    updated_at: Optional[datetime] = None
