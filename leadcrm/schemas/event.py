from pydantic import BaseModel
from typing import Optional
from datetime import datetime

# Field names follow the calendar client's camelCase payloads

class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    eventType: str
    startTime: datetime
    endTime: datetime
    advanceNotice: int = 15
    isActive: bool = True
    notified: bool = False
    customerId: Optional[int] = None
    customerName: Optional[str] = None
    leadId: Optional[int] = None
    taskId: Optional[int] = None

class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    eventType: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    advanceNotice: Optional[int] = None
    isActive: Optional[bool] = None
    notified: Optional[bool] = None
    customerId: Optional[int] = None
    customerName: Optional[str] = None
    leadId: Optional[int] = None
    taskId: Optional[int] = None
