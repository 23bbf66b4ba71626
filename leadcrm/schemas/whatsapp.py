from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

class WhatsAppCredentials(BaseModel):
    access_token: str
    phone_number_id: str
    business_account_id: Optional[str] = None
    app_id: Optional[str] = None
    webhook_verify_token: Optional[str] = None

class WhatsAppSend(BaseModel):
    phone_numbers: List[str]
    message: str

class WhatsAppConnectionOut(BaseModel):
    id: int
    phone_number_id: str
    business_account_id: Optional[str] = None
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
