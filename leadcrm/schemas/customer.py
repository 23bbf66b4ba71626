from pydantic import BaseModel, Field, AliasChoices
from typing import Optional
from datetime import datetime

class CustomerConvert(BaseModel):
    # Every field falls back to the lead's own value
    full_name: Optional[str] = Field(None, validation_alias=AliasChoices("full_name", "name"))
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    company_name: Optional[str] = Field(None, validation_alias=AliasChoices("company_name", "company"))
    notes: Optional[str] = None

class CustomerResponse(BaseModel):
    id: int
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    company_name: Optional[str] = None
    notes: Optional[str] = None
    client_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
