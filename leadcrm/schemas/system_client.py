from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

class SystemClientUpdate(BaseModel):
    name: Optional[str] = None
    company_name: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    lead_statuses: Optional[List[str]] = None
    customer_statuses: Optional[List[str]] = None
    payment_statuses: Optional[List[str]] = None
    features: Optional[Dict[str, Any]] = None
    message_templates: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None

class SystemClientResponse(BaseModel):
    id: int
    name: str
    company_name: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    lead_statuses: Optional[List[str]] = None
    customer_statuses: Optional[List[str]] = None
    payment_statuses: Optional[List[str]] = None
    features: Optional[Dict[str, Any]] = None
    message_templates: Optional[Dict[str, Any]] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
